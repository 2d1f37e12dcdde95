"""beliefnet: exact inference for discrete Bayesian networks.

This package provides a DAG of discrete variables with lossless
conditional probability tables, and three interchangeable inference
algorithms: brute-force enumeration, forward belief propagation and
reverse (diagnostic) belief propagation, with influence tracing.
"""

import logging

try:
    from beliefnet._version import version as __version__
except ImportError:
    __version__ = "0.1.0"

from .core.types import InfluenceTrace, Variable
from .core.context import InferenceContext
from .core.errors import BeliefNetError
from .distributions.conditional import CPT, ProbabilityTensor
from .networks.dag import BayesianNetwork
from .inference import (
    EnumerationResult,
    PropagationResult,
    belief_propagation,
    reverse_belief_propagation,
    variable_elimination,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BayesianNetwork",
    "BeliefNetError",
    "CPT",
    "EnumerationResult",
    "InferenceContext",
    "InfluenceTrace",
    "ProbabilityTensor",
    "PropagationResult",
    "Variable",
    "belief_propagation",
    "reverse_belief_propagation",
    "variable_elimination",
]
