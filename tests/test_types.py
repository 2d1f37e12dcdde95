"""Tests for beliefnet.core: variables, errors and the inference context."""

import pytest

from beliefnet.core.context import InferenceContext
from beliefnet.core.errors import (
    BeliefNetError,
    CycleError,
    MissingAssignmentError,
    MissingParentStateError,
    ProbabilityRangeError,
    StructureError,
    TensorIndexError,
    UnknownIdError,
)
from beliefnet.core.types import Variable, assignment_key


# ============================================================ Variable


class TestVariable:

    def test_state_indices_follow_declaration_order(self):
        v = Variable("D", "Disease", ["None", "Cold", "Flu"])
        assert v.num_states == 3
        assert v.state_index("None") == 0
        assert v.state_index("Flu") == 2

    def test_unknown_state_index_is_none(self):
        v = Variable("D", "Disease", ["None", "Cold"])
        assert v.state_index("Measles") is None
        assert not v.has_state("Measles")

    def test_states_are_frozen_to_tuple(self):
        v = Variable("A", "A", ["x", "y"])
        assert v.states == ("x", "y")

    def test_states_and_parents_are_read_only(self):
        v = Variable("A", "A", ["x", "y"])
        with pytest.raises(AttributeError):
            v.states = ("y", "x")
        assert isinstance(v.parents, frozenset)
        assert v.state_index("y") == 1

    def test_copy_is_independent(self):
        v = Variable("C", "C", ["a", "b"])
        v.add_parent("A")
        clone = v.copy()
        clone.add_parent("B")
        assert v.sorted_parents == ["A"]
        assert clone == Variable("C", "C", ["a", "b"], ["A", "B"])

    def test_empty_states_raise(self):
        with pytest.raises(ValueError, match="at least one state"):
            Variable("A", "A", [])

    def test_duplicate_states_raise(self):
        with pytest.raises(ValueError, match="duplicate"):
            Variable("A", "A", ["x", "x"])

    def test_single_state_allowed(self):
        v = Variable("A", "A", ["only"])
        assert v.num_states == 1

    def test_parent_set_semantics(self):
        v = Variable("C", "C", ["a", "b"])
        v.add_parent("B")
        v.add_parent("A")
        v.add_parent("B")
        assert v.num_parents == 2
        assert v.sorted_parents == ["A", "B"]
        assert v.has_parent("A")

        v.remove_parent("A")
        v.remove_parent("A")
        assert v.sorted_parents == ["B"]
        assert not v.has_parent("A")


def test_assignment_key_orders_by_query():
    key = assignment_key({"B": "t", "A": "f"}, ["A", "B"])
    assert key == (("A", "f"), ("B", "t"))


# ============================================================ errors


class TestErrors:

    def test_hierarchy(self):
        assert issubclass(CycleError, StructureError)
        assert issubclass(StructureError, BeliefNetError)
        assert issubclass(MissingParentStateError, MissingAssignmentError)
        assert issubclass(ProbabilityRangeError, ValueError)
        assert issubclass(TensorIndexError, IndexError)

    def test_message_and_details(self):
        err = UnknownIdError("X", role="Parent variable")
        assert str(err) == "Parent variable 'X' does not exist"
        assert err.details == {"variable_id": "X", "role": "Parent variable"}

    def test_missing_parent_state_names_both_variables(self):
        err = MissingParentStateError("Child", "Parent")
        assert err.variable_id == "Parent"
        assert err.child_id == "Child"
        assert "Parent" in str(err) and "Child" in str(err)

    def test_cycle_error_records_edge(self):
        err = CycleError("C", "A")
        assert (err.parent_id, err.child_id) == ("C", "A")


# ============================================================ InferenceContext


class TestInferenceContext:

    def test_defaults_without_active_context(self):
        assert not InferenceContext.is_active()
        ctx = InferenceContext.current()
        assert ctx.tolerance == 1e-6
        assert ctx.epsilon == 1e-10
        assert ctx.parent_resolution == "mode"
        assert ctx.trace_influence is True

    def test_enter_and_exit(self):
        with InferenceContext(epsilon=1e-3) as ctx:
            assert InferenceContext.is_active()
            assert InferenceContext.current() is ctx
        assert not InferenceContext.is_active()

    def test_nested_contexts_restore_outer(self):
        with InferenceContext(parent_resolution="marginal") as outer:
            with InferenceContext(trace_influence=False) as inner:
                assert InferenceContext.current() is inner
            assert InferenceContext.current() is outer

    def test_exit_on_exception_restores(self):
        with pytest.raises(RuntimeError):
            with InferenceContext():
                raise RuntimeError("boom")
        assert not InferenceContext.is_active()

    def test_invalid_resolution_raises(self):
        with pytest.raises(ValueError, match="parent_resolution"):
            InferenceContext(parent_resolution="median")

    def test_negative_tolerance_raises(self):
        with pytest.raises(ValueError):
            InferenceContext(tolerance=-1.0)
