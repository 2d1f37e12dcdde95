"""Probability tables for beliefnet."""

from .conditional import CPT, ProbabilityTensor

__all__ = ["CPT", "ProbabilityTensor"]
