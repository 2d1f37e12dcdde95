"""Network structure for beliefnet."""

from beliefnet.networks.dag import BayesianNetwork

__all__ = ["BayesianNetwork"]
