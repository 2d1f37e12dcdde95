"""Influence paths between evidence and query variables.

An :class:`~beliefnet.core.types.InfluenceTrace` is produced for every
simple directed path that connects an evidence variable to a query
variable.  Its strength is the query's belief shift (total variation
between the posterior and the no-evidence belief) scaled by the
coupling of every edge along the path, so weak links attenuate the
trace.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Mapping, Sequence

import networkx as nx
import numpy as np

from beliefnet.core.types import InfluenceTrace

if TYPE_CHECKING:
    from beliefnet.networks.dag import BayesianNetwork

logger = logging.getLogger(__name__)

Belief = Mapping[str, float]


def find_paths(
    network: "BayesianNetwork", source: str, target: str
) -> List[List[str]]:
    """Every simple directed path from *source* to *target*, sorted."""
    network.get_variable(source)
    network.get_variable(target)
    if source == target:
        return []
    return sorted(nx.all_simple_paths(network.graph, source, target))


def total_variation(p: Belief, q: Belief) -> float:
    """Half the L1 distance between two distributions over the same states."""
    return 0.5 * sum(abs(p.get(s, 0.0) - q.get(s, 0.0)) for s in set(p) | set(q))


def edge_coupling(
    network: "BayesianNetwork", parent_id: str, child_id: str
) -> float:
    """How strongly *parent_id* can move *child_id*, in [0, 1].

    The largest total-variation distance between two rows
    P(child | parent = u, rest) and P(child | parent = u', rest), taken
    over every pair of parent states and every configuration of the
    child's other parents.  Zero means the child ignores the parent.
    """
    tensor = network.require_table(child_id)
    axis = list(tensor.parent_ids).index(parent_id)
    dims = tensor.dimensions
    if dims[axis] < 2:
        return 0.0

    rows = np.moveaxis(tensor.array, axis, 0)
    rows = rows.reshape(dims[axis], -1, dims[-1])
    diffs = 0.5 * np.abs(rows[:, None] - rows[None, :]).sum(axis=-1)
    return float(min(1.0, diffs.max()))


def trace_influence(
    network: "BayesianNetwork",
    query: Sequence[str],
    evidence: Mapping[str, str],
    beliefs: Mapping[str, Belief],
    baseline: Mapping[str, Belief],
    reverse: bool = False,
) -> List[InfluenceTrace]:
    """Build one trace per path between each evidence/query pair.

    Parameters
    ----------
    network : BayesianNetwork
        The network the beliefs were computed on.
    query, evidence
        The inference request.  Pairs where the evidence variable is
        itself a query variable are skipped.
    beliefs : dict
        Posterior belief per query variable.
    baseline : dict
        Belief per query variable with no evidence at all.
    reverse : bool
        Forward mode follows directed paths evidence -> query.  Reverse
        mode follows directed paths query -> evidence (cause -> effect)
        and renders them effect first.

    Returns
    -------
    list of InfluenceTrace
        ``path`` is the ``"->"``-joined node ids starting at the
        evidence variable.
    """
    traces: List[InfluenceTrace] = []
    couplings: Dict[tuple, float] = {}

    for source in evidence:
        for target in query:
            if source == target:
                continue
            if reverse:
                paths = [p[::-1] for p in find_paths(network, target, source)]
            else:
                paths = find_paths(network, source, target)
            if not paths:
                continue

            shift = total_variation(beliefs[target], baseline[target])
            for nodes in paths:
                strength = shift
                for a, b in zip(nodes, nodes[1:]):
                    edge = (b, a) if reverse else (a, b)
                    if edge not in couplings:
                        couplings[edge] = edge_coupling(network, *edge)
                    strength *= couplings[edge]
                traces.append(
                    InfluenceTrace(
                        source=source,
                        target=target,
                        path="->".join(nodes),
                        nodes=tuple(nodes),
                        influence_strength=strength,
                        state_influences=dict(beliefs[target]),
                    )
                )

    logger.debug("Traced %d influence paths", len(traces))
    return traces
