"""Diagnostic (effect -> cause) inference.

:func:`reverse_belief_propagation` answers "given what was observed
downstream, what are the likely causes?"  The beliefs are exact
posteriors computed by enumerating the ancestral closure of the query
and evidence, so the answer does not depend on graph shape.  Influence
traces walk from each observed effect back up to each queried cause.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from beliefnet.core.context import InferenceContext
from beliefnet.core.types import Assignment, InfluenceTrace
from beliefnet.inference.belief_propagation import (
    Beliefs,
    PropagationResult,
    validate_request,
)
from beliefnet.inference.exact import marginal_distribution
from beliefnet.inference.tracing import trace_influence as _trace_influence

if TYPE_CHECKING:
    from beliefnet.networks.dag import BayesianNetwork

logger = logging.getLogger(__name__)


def _posterior(
    network: "BayesianNetwork",
    variable_id: str,
    evidence: Assignment,
    epsilon: float,
) -> Dict[str, float]:
    belief = marginal_distribution(network, variable_id, evidence)
    if sum(belief.values()) <= epsilon:
        logger.warning(
            "Evidence %s has zero probability; belief for %s is uniform",
            dict(evidence),
            variable_id,
        )
        return {s: 1.0 / len(belief) for s in belief}
    return belief


def reverse_belief_propagation(
    network: "BayesianNetwork",
    query: Sequence[str],
    evidence: Optional[Assignment] = None,
    trace_influence: Optional[bool] = None,
) -> PropagationResult:
    """Posterior beliefs over upstream *query* variables given *evidence*.

    Parameters
    ----------
    network : BayesianNetwork
        The network to query; it is not modified.
    query : sequence of str
        Cause variables to explain the evidence.
    evidence : dict, optional
        Observed effects, variable id -> state label.
    trace_influence : bool, optional
        Build traces along directed query -> evidence paths, rendered
        evidence first.  Defaults to the active :class:`InferenceContext`.

    Returns
    -------
    PropagationResult
        ``beliefs`` holds the query variables only; each sums to 1.

    Raises
    ------
    MissingTableError
        If a variable in the ancestral closure has no table.
    """
    ctx = InferenceContext.current()
    if trace_influence is None:
        trace_influence = ctx.trace_influence

    evidence = dict(evidence or {})
    query = validate_request(network, query, evidence)

    beliefs: Beliefs = {
        q: _posterior(network, q, evidence, ctx.epsilon) for q in query
    }
    logger.debug(
        "Diagnostic inference for %s given %d observations",
        query,
        len(evidence),
    )

    traces: List[InfluenceTrace] = []
    if trace_influence and evidence:
        baseline = {q: marginal_distribution(network, q) for q in query}
        traces = _trace_influence(
            network, query, evidence, beliefs, baseline, reverse=True
        )

    return PropagationResult(
        query=query, evidence=evidence, beliefs=beliefs, traces=traces
    )
