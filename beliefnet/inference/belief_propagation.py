"""Approximate belief propagation over a Bayesian network.

Pearl-style message passing in two sweeps over the topological order:

1. **Upward pass** (reverse topological order): every variable combines
   the messages of its children into a diagnostic support vector and
   sends each unobserved parent a message over that parent's states.
2. **Downward pass** (topological order): every unobserved variable
   computes its causal support from its parents' messages and its own
   table, then sends each unobserved child a message over its own
   states.

Every message lives on an edge and is a vector over the *parent's*
states, keyed ``(sender, receiver)``.  Observed variables are clamped to
a one-hot belief.

The result is exact on trees, and on polytrees where each variable with
several parents has at most one of them unobserved.  Elsewhere the
treatment of unobserved co-parents is an approximation selected by
``parent_resolution``:

``"mode"``
    Upward, other unobserved parents are pinned to their first state.
    Downward, each unobserved parent is summed out in turn against its
    message while the others sit at the mode of theirs; the partial
    results are averaged.
``"marginal"``
    Other unobserved parents are summed out, weighted by their current
    causal messages (uniform before the downward pass has reached them).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from beliefnet.core.context import PARENT_RESOLUTIONS, InferenceContext
from beliefnet.core.errors import MissingTableError
from beliefnet.core.types import Assignment, InfluenceTrace
from beliefnet.inference.tracing import trace_influence as _trace_influence

if TYPE_CHECKING:
    from beliefnet.networks.dag import BayesianNetwork

logger = logging.getLogger(__name__)

Beliefs = Dict[str, Dict[str, float]]


@dataclass
class PropagationResult:
    """Beliefs and influence traces from a propagation run.

    Unpacks as ``beliefs, traces = result``.

    Attributes
    ----------
    query : list of str
        The requested variables.
    evidence : dict
        The observed states.
    beliefs : dict
        ``{variable_id: {state: probability}}``.  Forward propagation
        fills in every variable; reverse propagation the query only.
    traces : list of InfluenceTrace
        Empty when tracing was disabled.
    messages : dict
        Final edge messages keyed ``(sender, receiver)``.
    """

    query: List[str]
    evidence: Dict[str, str]
    beliefs: Beliefs
    traces: List[InfluenceTrace] = field(default_factory=list)
    messages: Dict[Tuple[str, str], np.ndarray] = field(
        default_factory=dict, repr=False
    )

    @property
    def posterior(self) -> Beliefs:
        """Beliefs restricted to the query variables."""
        return {q: self.beliefs[q] for q in self.query if q in self.beliefs}

    def __iter__(self):
        yield self.beliefs
        yield self.traces


# ------------------------------------------------------------------ #
#  Vector helpers
# ------------------------------------------------------------------ #

def _uniform(n: int) -> np.ndarray:
    return np.full(n, 1.0 / n)


def _one_hot(n: int, index: int) -> np.ndarray:
    vec = np.zeros(n)
    vec[index] = 1.0
    return vec


def _normalized(vec: np.ndarray, epsilon: float) -> np.ndarray:
    total = vec.sum()
    if total <= epsilon:
        return vec
    return vec / total


def _collapse_parents(
    table: np.ndarray,
    parent_ids: Sequence[str],
    fixed: Mapping[str, int],
    weights: Mapping[str, np.ndarray],
    keep: Optional[str] = None,
) -> np.ndarray:
    """Remove every parent axis except *keep* from a CPT array.

    Parents in *fixed* are indexed at a single state; parents in
    *weights* are summed out against a weight vector.  Axes are handled
    last to first so earlier axis numbers stay valid.
    """
    arr = table
    for axis in range(len(parent_ids) - 1, -1, -1):
        pid = parent_ids[axis]
        if pid == keep:
            continue
        if pid in fixed:
            arr = np.take(arr, fixed[pid], axis=axis)
        else:
            arr = np.tensordot(weights[pid], arr, axes=([0], [axis]))
    return arr


# ------------------------------------------------------------------ #
#  Message passing
# ------------------------------------------------------------------ #

class _Propagator:
    """Holds the message state of one propagation run."""

    def __init__(
        self,
        network: "BayesianNetwork",
        evidence: Assignment,
        parent_resolution: str,
        epsilon: float,
    ) -> None:
        self.network = network
        self.order = network.variables
        self.resolution = parent_resolution
        self.epsilon = epsilon

        self.states = {v: network.get_states(v) for v in self.order}
        self.children = {v: network.children_of(v) for v in self.order}
        self.tables: Dict[str, np.ndarray] = {}
        self.parents: Dict[str, Tuple[str, ...]] = {}
        for v in self.order:
            tensor = network.require_table(v)
            self.tables[v] = tensor.array
            self.parents[v] = tuple(tensor.parent_ids)

        self.observed = {
            v: self.states[v].index(s) for v, s in evidence.items()
        }
        self.messages: Dict[Tuple[str, str], np.ndarray] = {}
        self.causal: Dict[str, np.ndarray] = {}
        self.initial: Dict[str, np.ndarray] = {}

    def _size(self, v: str) -> int:
        return len(self.states[v])

    def _causal_weight(self, parent: str, child: str) -> np.ndarray:
        msg = self.messages.get((parent, child))
        if msg is None:
            return _uniform(self._size(parent))
        return _normalized(msg, self.epsilon)

    def _child_product(self, v: str, exclude: Optional[str] = None) -> np.ndarray:
        vec = np.ones(self._size(v))
        for child in self.children[v]:
            if child == exclude:
                continue
            msg = self.messages.get((child, v))
            if msg is not None:
                vec = vec * msg
        return vec

    def initialize(self) -> None:
        for v in self.order:
            if v in self.observed:
                self.initial[v] = _one_hot(self._size(v), self.observed[v])
            else:
                self.initial[v] = _uniform(self._size(v))

        for v in self.order:
            if v in self.observed:
                seed = self.initial[v]
            elif not self.parents[v]:
                seed = self.tables[v].copy()
            else:
                continue
            for child in self.children[v]:
                self.messages[(v, child)] = seed.copy()

    def upward(self) -> None:
        for v in reversed(self.order):
            support = self.initial[v] * self._child_product(v)
            parents = self.parents[v]
            for u in parents:
                if u in self.observed:
                    continue
                fixed = {
                    w: self.observed[w]
                    for w in parents if w != u and w in self.observed
                }
                others = [
                    w for w in parents if w != u and w not in self.observed
                ]
                if self.resolution == "mode":
                    fixed.update({w: 0 for w in others})
                    weights: Dict[str, np.ndarray] = {}
                else:
                    weights = {w: self._causal_weight(w, v) for w in others}
                rows = _collapse_parents(
                    self.tables[v], parents, fixed, weights, keep=u
                )
                self.messages[(v, u)] = _normalized(rows @ support, self.epsilon)

    def _causal_support(self, v: str) -> np.ndarray:
        table = self.tables[v]
        parents = self.parents[v]
        if not parents:
            return table.copy()

        fixed = {u: self.observed[u] for u in parents if u in self.observed}
        free = [u for u in parents if u not in self.observed]
        if not free:
            return _collapse_parents(table, parents, fixed, {})

        weights = {u: self._causal_weight(u, v) for u in free}
        if self.resolution == "marginal" or len(free) == 1:
            return _collapse_parents(table, parents, fixed, weights)

        modes = {u: int(np.argmax(weights[u])) for u in free}
        total = np.zeros(self._size(v))
        for u in free:
            pinned = dict(fixed)
            pinned.update({w: modes[w] for w in free if w != u})
            total += _collapse_parents(table, parents, pinned, {u: weights[u]})
        return _normalized(total / len(free), self.epsilon)

    def downward(self) -> None:
        for v in self.order:
            if v in self.observed:
                continue
            pi = self._causal_support(v)
            self.causal[v] = pi
            for child in self.children[v]:
                if child in self.observed:
                    continue
                msg = self.initial[v] * pi * self._child_product(v, exclude=child)
                self.messages[(v, child)] = _normalized(msg, self.epsilon)

    def beliefs(self) -> Beliefs:
        result: Beliefs = {}
        for v in self.order:
            if v in self.observed:
                vec = self.initial[v]
            else:
                vec = self.causal[v] * self._child_product(v)
                total = vec.sum()
                if total <= self.epsilon:
                    logger.warning(
                        "Belief for %s vanished (evidence has zero "
                        "probability under the model); using uniform",
                        v,
                    )
                    vec = _uniform(self._size(v))
                else:
                    vec = vec / total
            result[v] = {s: float(p) for s, p in zip(self.states[v], vec)}
        return result

    def run(self) -> Beliefs:
        self.initialize()
        self.upward()
        self.downward()
        return self.beliefs()


def validate_request(
    network: "BayesianNetwork", query: Sequence[str], evidence: Assignment
) -> List[str]:
    network.check_assignment(evidence)
    query = list(dict.fromkeys(query))
    for q in query:
        network.get_variable(q)
    return query


def belief_propagation(
    network: "BayesianNetwork",
    query: Sequence[str],
    evidence: Optional[Assignment] = None,
    trace_influence: Optional[bool] = None,
    parent_resolution: Optional[str] = None,
) -> PropagationResult:
    """Propagate evidence through the network and read off beliefs.

    Parameters
    ----------
    network : BayesianNetwork
        The network to query; it is not modified.
    query : sequence of str
        Variables whose beliefs are of interest.  Beliefs are computed
        for every variable regardless.
    evidence : dict, optional
        Observed states, variable id -> state label.
    trace_influence : bool, optional
        Build influence traces along directed evidence -> query paths.
        Defaults to the active :class:`InferenceContext`.
    parent_resolution : {"mode", "marginal"}, optional
        Treatment of unobserved co-parents.  Defaults to the active
        :class:`InferenceContext`.

    Returns
    -------
    PropagationResult

    Raises
    ------
    MissingTableError
        If any variable has no table.
    UnknownIdError, UnknownStateError
        If the query or evidence cannot be resolved.
    """
    ctx = InferenceContext.current()
    if trace_influence is None:
        trace_influence = ctx.trace_influence
    if parent_resolution is None:
        parent_resolution = ctx.parent_resolution
    if parent_resolution not in PARENT_RESOLUTIONS:
        raise ValueError(
            f"parent_resolution must be one of {PARENT_RESOLUTIONS}, "
            f"got {parent_resolution!r}"
        )

    evidence = dict(evidence or {})
    query = validate_request(network, query, evidence)
    missing = network.missing_tables()
    if missing:
        raise MissingTableError(missing[0])

    propagator = _Propagator(network, evidence, parent_resolution, ctx.epsilon)
    beliefs = propagator.run()
    logger.debug(
        "Belief propagation over %d variables with %d observed",
        len(beliefs),
        len(evidence),
    )

    traces: List[InfluenceTrace] = []
    if trace_influence and evidence:
        baseline = _Propagator(network, {}, parent_resolution, ctx.epsilon).run()
        traces = _trace_influence(network, query, evidence, beliefs, baseline)

    return PropagationResult(
        query=query,
        evidence=evidence,
        beliefs=beliefs,
        traces=traces,
        messages=dict(propagator.messages),
    )
