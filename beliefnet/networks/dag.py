"""Directed acyclic graph (DAG) based Bayesian network.

Provides :class:`BayesianNetwork`, the owner of every variable and
conditional probability table in a model.  The edge structure is stored
in a :class:`networkx.DiGraph`; variables and tables are stored in
dictionaries keyed by variable id.

Structural guarantees:

* the cached topological order is a valid linearisation of the current
  DAG after every mutation;
* an edge that would close a cycle is rolled back before the cache is
  touched, then :class:`~beliefnet.core.errors.CycleError` is raised;
* a table is checked against the variable's parent and state counts
  when it is attached.

Probability queries:

* :meth:`BayesianNetwork.conditional_probability` - P(x | parents).
* :meth:`BayesianNetwork.joint_probability` - probability of a complete
  world, the product of every variable's conditional probability.
* :meth:`BayesianNetwork.infer` - dispatch to one of the inference
  algorithms in :mod:`beliefnet.inference`.
"""

from __future__ import annotations

import copy
import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set

import networkx as nx

from beliefnet.core.errors import (
    CycleError,
    DuplicateIdError,
    MissingAssignmentError,
    MissingParentStateError,
    MissingTableError,
    SelfLoopError,
    TensorShapeError,
    UnknownIdError,
    UnknownStateError,
)
from beliefnet.core.types import Assignment, Variable
from beliefnet.distributions.conditional import ProbabilityTensor

logger = logging.getLogger(__name__)

INFERENCE_METHODS = (
    "variable_elimination",
    "belief_propagation",
    "reverse_belief_propagation",
)


class BayesianNetwork:
    """Discrete Bayesian network backed by a :class:`networkx.DiGraph`.

    Variables are added first, then edges, then one conditional
    probability table per variable.  Inference never mutates the network.

    Examples
    --------
    >>> bn = BayesianNetwork()
    >>> bn.add_variable("A", "A", ["False", "True"])
    >>> bn.add_variable("B", "B", ["Low", "High"])
    >>> bn.add_edge("A", "B")
    >>> bn.set_conditional_table("A", ProbabilityTensor.from_array([0.7, 0.3]))
    >>> bn.set_conditional_table(
    ...     "B", ProbabilityTensor.from_array([[0.8, 0.2], [0.3, 0.7]])
    ... )
    >>> round(bn.joint_probability({"A": "True", "B": "High"}), 4)
    0.21
    """

    def __init__(self) -> None:
        self._graph: nx.DiGraph = nx.DiGraph()
        self._variables: Dict[str, Variable] = {}
        self._tables: Dict[str, ProbabilityTensor] = {}
        self._order: List[str] = []

    # ------------------------------------------------------------------ #
    #  Graph construction
    # ------------------------------------------------------------------ #

    def add_variable(
        self,
        variable_id: str,
        name: str,
        states: Sequence[str],
    ) -> None:
        """Add an isolated variable to the network.

        Parameters
        ----------
        variable_id : str
            Unique key for this variable.
        name : str
            Display name.
        states : sequence of str
            Ordered state labels.  Their positions index every table
            that involves this variable.

        Raises
        ------
        DuplicateIdError
            If *variable_id* already exists.
        ValueError
            If *states* is empty or contains duplicates.
        """
        if variable_id in self._variables:
            raise DuplicateIdError(variable_id)

        variable = Variable(variable_id, name, tuple(states))
        self._variables[variable_id] = variable
        self._graph.add_node(variable_id)
        self._order = self._topological_sort()
        logger.debug(
            "Added variable %s with %d states", variable_id, variable.num_states
        )

    def add_edge(self, parent_id: str, child_id: str) -> None:
        """Add a directed edge *parent_id* -> *child_id*.

        The topological order is recomputed in full.  If the edge would
        create a cycle it is removed again and the order is left as it
        was.  Adding an edge that already exists is a no-op.

        Raises
        ------
        UnknownIdError
            If either endpoint is not in the network.
        SelfLoopError
            If *parent_id* equals *child_id*.
        CycleError
            If the edge would close a directed cycle.
        """
        if parent_id not in self._variables:
            raise UnknownIdError(parent_id, role="Parent variable")
        if child_id not in self._variables:
            raise UnknownIdError(child_id, role="Child variable")
        if parent_id == child_id:
            raise SelfLoopError(parent_id)
        if self._graph.has_edge(parent_id, child_id):
            return

        child = self._variables[child_id]
        self._graph.add_edge(parent_id, child_id)
        child.add_parent(parent_id)
        try:
            order = self._topological_sort()
        except nx.NetworkXUnfeasible:
            self._graph.remove_edge(parent_id, child_id)
            child.remove_parent(parent_id)
            logger.debug("Rejected edge %s -> %s (cycle)", parent_id, child_id)
            raise CycleError(parent_id, child_id) from None

        self._order = order
        if child_id in self._tables:
            logger.warning(
                "Variable %s gained parent %s after its CPT was set; "
                "replace the CPT to match the new topology",
                child_id,
                parent_id,
            )
        logger.debug("Added edge %s -> %s", parent_id, child_id)

    def _topological_sort(self) -> List[str]:
        """Kahn ordering with lexicographic tie-breaking.

        Raises :class:`networkx.NetworkXUnfeasible` if the graph has a
        cycle.
        """
        return list(nx.lexicographical_topological_sort(self._graph))

    # ------------------------------------------------------------------ #
    #  Conditional probability tables
    # ------------------------------------------------------------------ #

    def set_conditional_table(
        self, variable_id: str, tensor: ProbabilityTensor
    ) -> None:
        """Attach *tensor* as P(variable | parents).

        The tensor's shape is checked against the current topology.  A
        tensor without a recorded parent order is bound to the canonical
        order (ascending parent ids).

        Raises
        ------
        UnknownIdError
            If *variable_id* is not in the network.
        TensorShapeError
            If the dimensions or parent ids do not match the variable.
        """
        variable = self._variable(variable_id)
        self._check_table_shape(variable, tensor)
        self._tables[variable_id] = tensor
        logger.debug(
            "Set CPT for %s with dimensions %s",
            variable_id,
            list(tensor.dimensions),
        )

    def _check_table_shape(
        self, variable: Variable, tensor: ProbabilityTensor
    ) -> None:
        parents = variable.sorted_parents
        dims = tensor.dimensions
        if tensor.num_parents != len(parents):
            raise TensorShapeError(
                f"CPT for '{variable.id}' has {tensor.num_parents} parent "
                f"dimensions but the variable has {len(parents)} parents",
                {"variable_id": variable.id, "dimensions": list(dims)},
            )
        if dims[-1] != variable.num_states:
            raise TensorShapeError(
                f"CPT for '{variable.id}' has {dims[-1]} own states but the "
                f"variable has {variable.num_states}",
                {"variable_id": variable.id, "dimensions": list(dims)},
            )

        order = list(tensor.parent_ids) if tensor.parent_ids is not None else parents
        if set(order) != set(parents):
            raise TensorShapeError(
                f"CPT for '{variable.id}' is bound to parents {order} but "
                f"the variable's parents are {parents}",
                {"variable_id": variable.id},
            )
        for pid, dim in zip(order, dims[:-1]):
            expected = self._variables[pid].num_states
            if dim != expected:
                raise TensorShapeError(
                    f"CPT for '{variable.id}' gives parent '{pid}' {dim} "
                    f"states but '{pid}' has {expected}",
                    {"variable_id": variable.id, "parent_id": pid},
                )

        if tensor.parent_ids is None:
            tensor.bind(parents)

    def require_table(self, variable_id: str) -> ProbabilityTensor:
        """Return the tensor of *variable_id*, checking it is current."""
        tensor = self._tables.get(variable_id)
        if tensor is None:
            raise MissingTableError(variable_id)
        if set(tensor.parent_ids) != self._variables[variable_id].parents:
            raise TensorShapeError(
                f"CPT for '{variable_id}' is stale: it covers parents "
                f"{list(tensor.parent_ids)} but the variable's parents are "
                f"{self._variables[variable_id].sorted_parents}",
                {"variable_id": variable_id},
            )
        return tensor

    def set_probability(
        self,
        variable_id: str,
        parent_states: Mapping[str, str],
        own_state: str,
        value: float,
    ) -> None:
        """Set one entry P(own_state | parent_states) = *value*.

        A zero-filled table shaped for the current topology is created
        on first use, and replaces a table left stale by a later edge.

        Raises
        ------
        UnknownIdError, UnknownStateError, MissingParentStateError
            If the variable, a state, or a parent state cannot be resolved.
        ProbabilityRangeError
            If *value* is not in [0, 1].
        """
        variable = self._variable(variable_id)
        current = self._tables.get(variable_id)
        if current is not None and set(current.parent_ids) != variable.parents:
            logger.warning(
                "Discarding stale CPT for %s; starting a zeroed table over "
                "parents %s",
                variable_id,
                variable.sorted_parents,
            )
            current = None
        if current is None:
            parents = variable.sorted_parents
            dims = [self._variables[p].num_states for p in parents]
            dims.append(variable.num_states)
            self.set_conditional_table(
                variable_id, ProbabilityTensor(dims, parent_ids=parents)
            )
        tensor = self.require_table(variable_id)
        parent_indices = self._parent_indices(variable, tensor, parent_states)
        tensor.set_probability(
            parent_indices, self._state_index(variable, own_state), value
        )

    def normalize(self, variable_id: str) -> None:
        """Normalize the table of *variable_id* row by row."""
        self._variable(variable_id)
        self.require_table(variable_id).normalize()

    def get_table(self, variable_id: str) -> Optional[ProbabilityTensor]:
        """Return the table for *variable_id*, or None if unset."""
        self._variable(variable_id)
        return self._tables.get(variable_id)

    def has_table(self, variable_id: str) -> bool:
        return variable_id in self._tables

    def missing_tables(self) -> List[str]:
        """Return ids (topological order) of variables without a table."""
        return [v for v in self._order if v not in self._tables]

    # ------------------------------------------------------------------ #
    #  Probability queries
    # ------------------------------------------------------------------ #

    def _state_index(self, variable: Variable, state: str) -> int:
        idx = variable.state_index(state)
        if idx is None:
            raise UnknownStateError(variable.id, state)
        return idx

    def _parent_indices(
        self,
        variable: Variable,
        tensor: ProbabilityTensor,
        parent_states: Mapping[str, str],
    ) -> List[int]:
        indices: List[int] = []
        for pid in tensor.parent_ids:
            if pid not in parent_states:
                raise MissingParentStateError(variable.id, pid)
            indices.append(
                self._state_index(self._variables[pid], parent_states[pid])
            )
        return indices

    def conditional_probability(
        self,
        variable_id: str,
        own_state: str,
        parent_states: Mapping[str, str],
    ) -> float:
        """Return P(variable = own_state | parents = parent_states).

        Parent states are mapped to indices in the table's parent order
        (ascending parent ids unless the table recorded its own order).
        Entries for non-parents in *parent_states* are ignored.

        Raises
        ------
        UnknownIdError
            If *variable_id* is not in the network.
        MissingTableError
            If no table is attached.
        MissingParentStateError
            If a parent is absent from *parent_states*.
        UnknownStateError
            If a state label is not defined.
        """
        variable = self._variable(variable_id)
        tensor = self.require_table(variable_id)
        parent_indices = self._parent_indices(variable, tensor, parent_states)
        own_index = self._state_index(variable, own_state)
        return tensor.get_probability(parent_indices, own_index)

    def joint_probability(
        self,
        assignment: Assignment,
        variables: Optional[Iterable[str]] = None,
    ) -> float:
        """Return the probability of a complete world.

        Multiplies P(x_i | parents(x_i)) over every variable in
        topological order.  If *variables* is given, only those
        variables contribute; the subset must be closed under taking
        parents, which makes the product the marginal probability of the
        subset's assignment.

        Raises
        ------
        MissingAssignmentError
            If a contributing variable or one of its parents has no state.
        """
        if variables is None:
            order = self._order
        else:
            subset = set(variables)
            for vid in subset:
                self._variable(vid)
            order = [v for v in self._order if v in subset]

        joint = 1.0
        for vid in order:
            if vid not in assignment:
                raise MissingAssignmentError(vid)
            variable = self._variables[vid]
            for pid in variable.parents:
                if pid not in assignment:
                    raise MissingAssignmentError(
                        pid,
                        f"Missing assignment for parent '{pid}' of '{vid}'",
                    )
            joint *= self.conditional_probability(vid, assignment[vid], assignment)
        return joint

    def check_assignment(self, assignment: Assignment) -> None:
        """Verify every id and state in a (partial) assignment exists."""
        for vid, state in assignment.items():
            self._state_index(self._variable(vid), state)

    def infer(
        self,
        query: Sequence[str],
        evidence: Optional[Assignment] = None,
        method: str = "variable_elimination",
        **kwargs,
    ):
        """Run one of the inference algorithms on this network.

        Parameters
        ----------
        query : sequence of str
            Query variable ids.
        evidence : dict, optional
            Observed states, variable id -> state label.
        method : str
            ``"variable_elimination"`` (exhaustive enumeration),
            ``"belief_propagation"`` or ``"reverse_belief_propagation"``.
        **kwargs
            Passed through to the algorithm.

        Returns
        -------
        EnumerationResult or PropagationResult
        """
        from beliefnet.inference import (
            belief_propagation,
            reverse_belief_propagation,
            variable_elimination,
        )

        algorithms = {
            "variable_elimination": variable_elimination,
            "belief_propagation": belief_propagation,
            "reverse_belief_propagation": reverse_belief_propagation,
        }
        if method not in algorithms:
            raise ValueError(
                f"Unknown inference method {method!r}; "
                f"expected one of {INFERENCE_METHODS}"
            )
        return algorithms[method](self, query, evidence or {}, **kwargs)

    # ------------------------------------------------------------------ #
    #  Structure queries
    # ------------------------------------------------------------------ #

    def _variable(self, variable_id: str) -> Variable:
        try:
            return self._variables[variable_id]
        except KeyError:
            raise UnknownIdError(variable_id) from None

    def get_variable(self, variable_id: str) -> Variable:
        """Return a detached copy of the :class:`Variable` for *variable_id*.

        Edges change through :meth:`add_edge` only.
        """
        return self._variable(variable_id).copy()

    def get_states(self, variable_id: str) -> List[str]:
        """Return the state labels for a variable."""
        return list(self._variable(variable_id).states)

    @property
    def variables(self) -> List[str]:
        """Return variable ids in topological order."""
        return list(self._order)

    @property
    def edges(self) -> List[tuple[str, str]]:
        """Return directed edges as (parent, child) tuples."""
        return sorted(self._graph.edges())

    @property
    def graph(self) -> nx.DiGraph:
        """Read-only view of the underlying graph."""
        return self._graph.copy(as_view=True)

    def parents_of(self, variable_id: str) -> List[str]:
        return self._variable(variable_id).sorted_parents

    def children_of(self, variable_id: str) -> List[str]:
        self._variable(variable_id)
        return sorted(self._graph.successors(variable_id))

    def ancestors_of(self, variable_id: str) -> Set[str]:
        """Return all ancestors of *variable_id* (excluding itself)."""
        self._variable(variable_id)
        return set(nx.ancestors(self._graph, variable_id))

    def descendants_of(self, variable_id: str) -> Set[str]:
        """Return all descendants of *variable_id* (excluding itself)."""
        self._variable(variable_id)
        return set(nx.descendants(self._graph, variable_id))

    @property
    def roots(self) -> List[str]:
        """Return parentless variables in topological order."""
        return [v for v in self._order if not self._variables[v].parents]

    def copy(self) -> "BayesianNetwork":
        """Return an independent deep copy (a snapshot for readers)."""
        clone = BayesianNetwork()
        clone._graph = self._graph.copy()
        clone._variables = copy.deepcopy(self._variables)
        clone._tables = {k: t.copy() for k, t in self._tables.items()}
        clone._order = list(self._order)
        return clone

    def __contains__(self, variable_id: object) -> bool:
        return variable_id in self._variables

    def __len__(self) -> int:
        return len(self._variables)

    def __iter__(self) -> Iterator[str]:
        return iter(self.variables)

    def __repr__(self) -> str:
        return (
            f"BayesianNetwork(variables={self.variables}, "
            f"edges={self.edges})"
        )
