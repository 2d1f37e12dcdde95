"""Core module for beliefnet.

Holds the variable and trace types, the error hierarchy, and the
context manager that scopes inference settings.
"""

from .types import InfluenceTrace, Variable
from .context import InferenceContext

__all__ = ["InferenceContext", "InfluenceTrace", "Variable"]
