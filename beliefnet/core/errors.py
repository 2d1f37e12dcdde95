"""Exception hierarchy for beliefnet.

Every error raised by the engine derives from :class:`BeliefNetError`, so
callers can catch the whole family with a single handler.  The subclasses
mirror the three places things go wrong:

* structure - duplicate ids, unknown ids, self-loops, cycles;
* assignment - unknown states, missing parent or variable states;
* tensor - probabilities outside [0, 1], bad indices, shape mismatches.

All errors are synchronous and fail fast; nothing in the engine retries.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BeliefNetError(Exception):
    """Base exception for all beliefnet errors.

    Parameters
    ----------
    message : str
        Human-readable description.
    details : dict, optional
        Structured context (ids, states, indices) for programmatic use.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Structural errors
# ---------------------------------------------------------------------------

class StructureError(BeliefNetError):
    """Base exception for invalid graph mutations."""

    pass


class DuplicateIdError(StructureError):
    """Raised when a variable id is added twice."""

    def __init__(self, variable_id: str):
        super().__init__(
            f"Variable '{variable_id}' already exists",
            {"variable_id": variable_id},
        )
        self.variable_id = variable_id


class UnknownIdError(StructureError):
    """Raised when a variable id is not part of the network."""

    def __init__(self, variable_id: str, role: str = "Variable"):
        super().__init__(
            f"{role} '{variable_id}' does not exist",
            {"variable_id": variable_id, "role": role},
        )
        self.variable_id = variable_id


class SelfLoopError(StructureError):
    """Raised when an edge would connect a variable to itself."""

    def __init__(self, variable_id: str):
        super().__init__(
            f"Cannot add self-loop on '{variable_id}'",
            {"variable_id": variable_id},
        )
        self.variable_id = variable_id


class CycleError(StructureError):
    """Raised when an edge would create a directed cycle.

    The offending edge has already been rolled back when this is raised.
    """

    def __init__(self, parent_id: str, child_id: str):
        super().__init__(
            f"Adding edge {parent_id} -> {child_id} would create a cycle",
            {"parent_id": parent_id, "child_id": child_id},
        )
        self.parent_id = parent_id
        self.child_id = child_id


# ---------------------------------------------------------------------------
# Assignment errors
# ---------------------------------------------------------------------------

class MissingTableError(BeliefNetError):
    """Raised when a variable has no conditional probability table."""

    def __init__(self, variable_id: str):
        super().__init__(
            f"CPT not set for variable '{variable_id}'",
            {"variable_id": variable_id},
        )
        self.variable_id = variable_id


class UnknownStateError(BeliefNetError):
    """Raised when a state label is not defined for a variable."""

    def __init__(self, variable_id: str, state: str):
        super().__init__(
            f"'{state}' is not a valid state of '{variable_id}'",
            {"variable_id": variable_id, "state": state},
        )
        self.variable_id = variable_id
        self.state = state


class MissingAssignmentError(BeliefNetError):
    """Raised when a full assignment is required but a variable is absent."""

    def __init__(self, variable_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Missing assignment for variable '{variable_id}'",
            {"variable_id": variable_id},
        )
        self.variable_id = variable_id


class MissingParentStateError(MissingAssignmentError):
    """Raised when a parent's state is absent from a parent assignment."""

    def __init__(self, variable_id: str, parent_id: str):
        super().__init__(
            parent_id,
            f"Missing state for parent '{parent_id}' of '{variable_id}'",
        )
        self.details["child_id"] = variable_id
        self.child_id = variable_id


# ---------------------------------------------------------------------------
# Tensor errors
# ---------------------------------------------------------------------------

class ProbabilityRangeError(BeliefNetError, ValueError):
    """Raised when a probability lies outside [0, 1]."""

    def __init__(self, value: float):
        super().__init__(
            f"Probability must be in [0, 1], got {value!r}",
            {"value": value},
        )
        self.value = value


class TensorIndexError(BeliefNetError, IndexError):
    """Raised on out-of-bounds indices or index-vector length mismatch."""

    pass


class TensorShapeError(BeliefNetError, ValueError):
    """Raised when tensor dimensions do not match the network topology."""

    pass


class SerializationError(BeliefNetError, ValueError):
    """Raised when a persisted network cannot be read or written."""

    pass
