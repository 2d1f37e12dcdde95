"""Core types for beliefnet models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

# variable id -> state label
Assignment = Mapping[str, str]
# hashable assignment used as a result key: ((variable_id, state), ...)
AssignmentKey = Tuple[Tuple[str, str], ...]


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

class Variable:
    """A discrete random variable with a fixed, ordered set of states.

    The state order is frozen at construction: the index of each state
    is what probability tensors are indexed by, so it must never move.
    ``states`` and ``parents`` are read-only views; the network owns the
    edges and is the only caller of :meth:`add_parent` and
    :meth:`remove_parent` on the variables it holds.
    """

    def __init__(
        self,
        id: str,
        name: str,
        states: Sequence[str],
        parents: Iterable[str] = (),
    ) -> None:
        self.id = id
        self.name = name
        self._states: Tuple[str, ...] = tuple(states)
        if not self._states:
            raise ValueError(f"Variable '{id}' needs at least one state")
        if len(set(self._states)) != len(self._states):
            raise ValueError(f"Variable '{id}' has duplicate states")
        self._parents: Set[str] = set(parents)
        self._index: Dict[str, int] = {s: i for i, s in enumerate(self._states)}

    @property
    def states(self) -> Tuple[str, ...]:
        return self._states

    @property
    def parents(self) -> FrozenSet[str]:
        return frozenset(self._parents)

    @property
    def num_states(self) -> int:
        return len(self._states)

    @property
    def num_parents(self) -> int:
        return len(self._parents)

    @property
    def sorted_parents(self) -> List[str]:
        """Parent ids in ascending order (the canonical tensor order)."""
        return sorted(self._parents)

    def state_index(self, state: str) -> Optional[int]:
        """Return the index of *state*, or None if it is not defined."""
        return self._index.get(state)

    def has_state(self, state: str) -> bool:
        return state in self._index

    def add_parent(self, parent_id: str) -> None:
        self._parents.add(parent_id)

    def remove_parent(self, parent_id: str) -> None:
        self._parents.discard(parent_id)

    def has_parent(self, parent_id: str) -> bool:
        return parent_id in self._parents

    def copy(self) -> "Variable":
        return Variable(self.id, self.name, self._states, self._parents)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Variable):
            return NotImplemented
        return (
            self.id == other.id
            and self.name == other.name
            and self._states == other._states
            and self._parents == other._parents
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Variable(id={self.id!r}, name={self.name!r}, "
            f"states={self._states!r}, parents={self.sorted_parents!r})"
        )


# ---------------------------------------------------------------------------
# Inference records
# ---------------------------------------------------------------------------

@dataclass
class InfluenceTrace:
    """Attribution of a query variable's belief to one directed path.

    Attributes
    ----------
    source : str
        The evidence variable the path starts from.
    target : str
        The query variable the path ends at.
    path : str
        Arrow-joined ids, e.g. ``"A->B->C"``.
    nodes : tuple of str
        The same path as a tuple of ids.
    influence_strength : float
        Path-specific strength in [0, 1]: the query's belief shift scaled
        by the coupling of every edge on the path.
    state_influences : dict
        The query variable's final belief, state -> probability.
    """

    source: str
    target: str
    path: str
    nodes: Tuple[str, ...]
    influence_strength: float
    state_influences: Dict[str, float] = field(default_factory=dict)


def assignment_key(
    assignment: Assignment, order: Sequence[str]
) -> AssignmentKey:
    """Freeze *assignment* into a hashable key ordered by *order*."""
    return tuple((v, assignment[v]) for v in order)
