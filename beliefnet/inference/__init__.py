"""Inference algorithms for beliefnet."""

from beliefnet.inference.exact import (
    EnumerationResult,
    JointEvaluation,
    evaluate_joint,
    marginal_distribution,
    variable_elimination,
)
from beliefnet.inference.belief_propagation import (
    PropagationResult,
    belief_propagation,
)
from beliefnet.inference.reverse import reverse_belief_propagation
from beliefnet.inference.tracing import edge_coupling, find_paths

__all__ = [
    "EnumerationResult",
    "JointEvaluation",
    "PropagationResult",
    "belief_propagation",
    "edge_coupling",
    "evaluate_joint",
    "find_paths",
    "marginal_distribution",
    "reverse_belief_propagation",
    "variable_elimination",
]
