"""Exact inference by exhaustive enumeration.

Provides:

* :class:`JointEvaluation` - the outcome of evaluating one complete
  world: either a probability or the error that prevented it.
* :class:`EnumerationResult` - the normalized posterior over query
  assignments, together with the count and details of every skipped
  combination.
* :func:`iter_assignments` - iterative Cartesian product over
  variables' states.
* :func:`variable_elimination` - brute-force posterior over the query
  variables.

Despite its historical name, :func:`variable_elimination` performs no
factor-graph elimination and caches no sub-sums: for each query
assignment it sums the joint probability over every assignment of the
remaining unobserved variables.  The cost is exponential in the number
of unobserved variables; the result is exact.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
)

from beliefnet.core.context import InferenceContext
from beliefnet.core.errors import BeliefNetError
from beliefnet.core.types import Assignment, AssignmentKey, assignment_key

if TYPE_CHECKING:
    from beliefnet.networks.dag import BayesianNetwork

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
#  Per-combination outcome
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class JointEvaluation:
    """Outcome of evaluating the joint probability of one world.

    Exactly one of *probability* and *error* is set.
    """

    assignment: Dict[str, str]
    probability: Optional[float] = None
    error: Optional[BeliefNetError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def evaluate_joint(
    network: "BayesianNetwork",
    assignment: Assignment,
    variables: Optional[Sequence[str]] = None,
) -> JointEvaluation:
    """Evaluate :meth:`BayesianNetwork.joint_probability` without raising.

    Engine errors are captured in the returned :class:`JointEvaluation`;
    anything else propagates.
    """
    world = dict(assignment)
    try:
        prob = network.joint_probability(world, variables=variables)
    except BeliefNetError as exc:
        return JointEvaluation(world, error=exc)
    return JointEvaluation(world, probability=prob)


# ------------------------------------------------------------------ #
#  Result container
# ------------------------------------------------------------------ #

class EnumerationResult(MappingABC):
    """Posterior over query assignments.

    Behaves as a read-only mapping ``{((var, state), ...): probability}``
    keyed in query order.

    Attributes
    ----------
    query : list of str
        Query variable ids, in the order used by the keys.
    evidence : dict
        The evidence the posterior is conditioned on.
    skipped : list of JointEvaluation
        Combinations whose joint evaluation failed and were left out of
        the sum.
    evaluated : int
        Number of combinations that were evaluated successfully.
    total_mass : float
        Unnormalized sum over all query assignments, i.e. P(evidence)
        when nothing was skipped.
    """

    def __init__(
        self,
        query: Sequence[str],
        evidence: Assignment,
        probabilities: Dict[AssignmentKey, float],
        skipped: List[JointEvaluation],
        evaluated: int,
        total_mass: float,
    ) -> None:
        self.query = list(query)
        self.evidence = dict(evidence)
        self._probabilities = probabilities
        self.skipped = skipped
        self.evaluated = evaluated
        self.total_mass = total_mass

    def __getitem__(self, key: AssignmentKey) -> float:
        return self._probabilities[key]

    def __iter__(self) -> Iterator[AssignmentKey]:
        return iter(self._probabilities)

    def __len__(self) -> int:
        return len(self._probabilities)

    @property
    def num_skipped(self) -> int:
        return len(self.skipped)

    def probability(self, assignment: Assignment) -> float:
        """Look up the posterior of a query assignment given as a dict."""
        return self._probabilities[assignment_key(assignment, self.query)]

    def marginal(self, variable_id: str) -> Dict[str, float]:
        """Fold the joint posterior onto one query variable."""
        if variable_id not in self.query:
            raise KeyError(f"'{variable_id}' is not a query variable")
        pos = self.query.index(variable_id)
        result: Dict[str, float] = {}
        for key, prob in self._probabilities.items():
            state = key[pos][1]
            result[state] = result.get(state, 0.0) + prob
        return result

    def most_probable(self) -> AssignmentKey:
        """Return the query assignment with the highest posterior."""
        return max(self._probabilities, key=self._probabilities.__getitem__)

    def __repr__(self) -> str:
        return (
            f"EnumerationResult(query={self.query}, "
            f"assignments={len(self)}, skipped={self.num_skipped})"
        )


# ------------------------------------------------------------------ #
#  Enumeration helpers
# ------------------------------------------------------------------ #

def iter_assignments(
    network: "BayesianNetwork", variable_ids: Sequence[str]
) -> Iterator[Dict[str, str]]:
    """Yield every assignment of *variable_ids*, last variable fastest.

    An empty list yields exactly one empty assignment.
    """
    ids = list(variable_ids)
    state_lists = [network.get_states(v) for v in ids]
    for combo in itertools.product(*state_lists):
        yield dict(zip(ids, combo))


def normalize_distribution(
    values: Mapping, epsilon: Optional[float] = None
) -> Dict:
    """Divide every value by the total unless the total is ~0."""
    if epsilon is None:
        epsilon = InferenceContext.current().epsilon
    total = sum(values.values())
    if total <= epsilon:
        return dict(values)
    return {k: v / total for k, v in values.items()}


# ------------------------------------------------------------------ #
#  Brute-force enumeration ("variable elimination")
# ------------------------------------------------------------------ #

def variable_elimination(
    network: "BayesianNetwork",
    query: Sequence[str],
    evidence: Optional[Assignment] = None,
) -> EnumerationResult:
    """Exact posterior over *query* by exhaustive enumeration.

    For every assignment of the query variables, sums the joint
    probability of evidence + query + every assignment of the remaining
    variables, then normalizes over the query assignments.

    A combination whose joint evaluation raises a
    :class:`~beliefnet.core.errors.BeliefNetError` (e.g. a missing
    table) is skipped rather than aborting the query.  Skipped
    combinations are recorded on the result and logged, because the
    probability mass they would have contributed is lost.

    Parameters
    ----------
    network : BayesianNetwork
        The network to query; it is not modified.
    query : sequence of str
        Query variable ids.  Duplicates are ignored.
    evidence : dict, optional
        Observed states.  A query variable that is also observed gets
        all of its mass on the observed state.

    Returns
    -------
    EnumerationResult
        Normalized posterior keyed by ``((var, state), ...)`` in query
        order.

    Raises
    ------
    UnknownIdError
        If a query or evidence variable is not in the network.
    UnknownStateError
        If an evidence state is not defined.
    """
    evidence = dict(evidence or {})
    network.check_assignment(evidence)
    query = list(dict.fromkeys(query))
    for q in query:
        network.get_variable(q)

    query_set = set(query)
    sum_vars = [
        v for v in network.variables
        if v not in evidence and v not in query_set
    ]
    logger.debug(
        "Enumerating %d query and %d summed variables",
        len(query),
        len(sum_vars),
    )

    probabilities: Dict[AssignmentKey, float] = {}
    skipped: List[JointEvaluation] = []
    evaluated = 0

    for query_assignment in iter_assignments(network, query):
        key = assignment_key(query_assignment, query)
        if any(
            q in evidence and evidence[q] != s
            for q, s in query_assignment.items()
        ):
            probabilities[key] = 0.0
            continue

        mass = 0.0
        for sum_assignment in iter_assignments(network, sum_vars):
            world = {**evidence, **query_assignment, **sum_assignment}
            outcome = evaluate_joint(network, world)
            if outcome.ok:
                mass += outcome.probability
                evaluated += 1
            else:
                skipped.append(outcome)
        probabilities[key] = mass

    if skipped:
        logger.warning(
            "Skipped %d of %d combinations during enumeration; first error: %s",
            len(skipped),
            len(skipped) + evaluated,
            skipped[0].error,
        )

    total = sum(probabilities.values())
    return EnumerationResult(
        query,
        evidence,
        normalize_distribution(probabilities),
        skipped,
        evaluated,
        total,
    )


def marginal_distribution(
    network: "BayesianNetwork",
    variable_id: str,
    evidence: Optional[Assignment] = None,
    restrict_to_ancestors: bool = True,
) -> Dict[str, float]:
    """Exact P(variable | evidence) as a state -> probability dict.

    With *restrict_to_ancestors* only the ancestral closure of the
    variable and the evidence is enumerated.  Every other variable is a
    barren descendant whose tables sum to one, so the result is
    unchanged while the enumeration shrinks.
    """
    evidence = dict(evidence or {})
    network.check_assignment(evidence)
    network.get_variable(variable_id)

    if restrict_to_ancestors:
        relevant = {variable_id, *evidence}
        for v in list(relevant):
            relevant |= network.ancestors_of(v)
        subset = [v for v in network.variables if v in relevant]
    else:
        subset = network.variables

    hidden = [v for v in subset if v != variable_id and v not in evidence]
    states = network.get_states(variable_id)
    mass: Dict[str, float] = {}
    for state in states:
        if variable_id in evidence and evidence[variable_id] != state:
            mass[state] = 0.0
            continue
        total = 0.0
        for hidden_assignment in iter_assignments(network, hidden):
            world = {**evidence, variable_id: state, **hidden_assignment}
            total += network.joint_probability(world, variables=subset)
        mass[state] = total
    return normalize_distribution(mass)
