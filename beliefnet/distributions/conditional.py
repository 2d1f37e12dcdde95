"""Conditional probability tables.

A :class:`ProbabilityTensor` stores P(variable | parents) as a dense,
flat ``float64`` array addressed by a composite key
``(parent_index_0, ..., parent_index_k, self_index)``.  The last
dimension is the variable's own state count; the preceding dimensions
follow the tensor's ``parent_ids`` order.

The tensor records which parent id maps to which dimension.  When it is
attached to a network without an explicit order, the network binds the
canonical order (ascending parent ids), so tables written against the
sorted order and tables that carry their own order both index correctly.

Example
-------
>>> from beliefnet.distributions.conditional import ProbabilityTensor
>>>
>>> cpt = ProbabilityTensor([2, 2])
>>> cpt.set_probability([0], 0, 0.8)
>>> cpt.set_probability([0], 1, 0.2)
>>> cpt.set_probability([1], 0, 0.3)
>>> cpt.set_probability([1], 1, 0.7)
>>> cpt.is_valid()
True
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from beliefnet.core.context import InferenceContext
from beliefnet.core.errors import (
    ProbabilityRangeError,
    TensorIndexError,
    TensorShapeError,
)


class ProbabilityTensor:
    """Dense conditional probability table with row-major flat storage.

    Parameters
    ----------
    dimensions : sequence of int
        ``[parent_0_states, ..., parent_k_states, own_states]``.
    parent_ids : sequence of str, optional
        Parent id for each leading dimension.  Left unset, the order is
        bound when the tensor is attached to a network.

    Raises
    ------
    TensorShapeError
        If *dimensions* is empty, contains a non-positive size, or
        *parent_ids* does not match the number of parent dimensions.
    """

    def __init__(
        self,
        dimensions: Sequence[int],
        parent_ids: Optional[Sequence[str]] = None,
    ) -> None:
        dims = tuple(int(d) for d in dimensions)
        if not dims:
            raise TensorShapeError("A tensor needs at least one dimension")
        if any(d <= 0 for d in dims):
            raise TensorShapeError(
                f"Tensor dimensions must be positive, got {list(dims)}"
            )
        self._dimensions: Tuple[int, ...] = dims
        self._strides: Tuple[int, ...] = self._compute_strides(dims)
        self._values: np.ndarray = np.zeros(int(np.prod(dims)), dtype=np.float64)
        self._parent_ids: Optional[Tuple[str, ...]] = None
        if parent_ids is not None:
            self.bind(parent_ids)

    # ----- factory helpers ------------------------------------------------

    @classmethod
    def from_array(
        cls,
        values: np.ndarray,
        parent_ids: Optional[Sequence[str]] = None,
    ) -> "ProbabilityTensor":
        """Build a tensor from an N-d array whose last axis is the own state.

        A 1-D array is a prior for a parentless variable.
        """
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim == 0:
            raise TensorShapeError("A tensor needs at least one dimension")
        # NaN fails both comparisons
        out_of_range = ~((arr >= 0.0) & (arr <= 1.0))
        if np.any(out_of_range):
            raise ProbabilityRangeError(float(arr[out_of_range].flat[0]))
        tensor = cls(arr.shape, parent_ids=parent_ids)
        tensor._values[:] = arr.ravel()
        return tensor

    @staticmethod
    def _compute_strides(dims: Tuple[int, ...]) -> Tuple[int, ...]:
        """Row-major strides: last dimension 1, each earlier one scaled."""
        strides = [1] * len(dims)
        for i in range(len(dims) - 2, -1, -1):
            strides[i] = strides[i + 1] * dims[i + 1]
        return tuple(strides)

    # ----- parent order ---------------------------------------------------

    def bind(self, parent_ids: Sequence[str]) -> None:
        """Record which parent id maps to each leading dimension."""
        ids = tuple(parent_ids)
        if len(ids) != len(self._dimensions) - 1:
            raise TensorShapeError(
                f"Tensor has {len(self._dimensions) - 1} parent dimensions "
                f"but {len(ids)} parent ids were given"
            )
        if len(set(ids)) != len(ids):
            raise TensorShapeError(f"Duplicate parent ids {list(ids)}")
        self._parent_ids = ids

    @property
    def parent_ids(self) -> Optional[Tuple[str, ...]]:
        return self._parent_ids

    # ----- indexing -------------------------------------------------------

    def _flat_index(self, indices: Sequence[int]) -> int:
        if len(indices) != len(self._dimensions):
            raise TensorIndexError(
                f"Index dimension mismatch: expected "
                f"{len(self._dimensions)} indices, got {len(indices)}",
                {"indices": list(indices), "dimensions": list(self._dimensions)},
            )
        index = 0
        for i, (idx, dim) in enumerate(zip(indices, self._dimensions)):
            if idx < 0 or idx >= dim:
                raise TensorIndexError(
                    f"Index {idx} out of bounds for dimension {i} "
                    f"of size {dim}",
                    {"indices": list(indices), "dimensions": list(self._dimensions)},
                )
            index += int(idx) * self._strides[i]
        return index

    def set_probability(
        self,
        parent_indices: Sequence[int],
        self_index: int,
        value: float,
    ) -> None:
        """Write P(self=self_index | parents=parent_indices) = *value*.

        Raises
        ------
        ProbabilityRangeError
            If *value* is not in [0, 1].
        TensorIndexError
            If any index is out of bounds or the index count is wrong.
        """
        if not 0.0 <= value <= 1.0:
            raise ProbabilityRangeError(value)
        idx = self._flat_index(list(parent_indices) + [self_index])
        self._values[idx] = value

    def get_probability(
        self,
        parent_indices: Sequence[int],
        self_index: int,
    ) -> float:
        """Return the stored value; no normalization is applied."""
        idx = self._flat_index(list(parent_indices) + [self_index])
        return float(self._values[idx])

    def distribution(self, parent_indices: Sequence[int]) -> np.ndarray:
        """Return a copy of the own-state slice for one parent configuration."""
        start = self._flat_index(list(parent_indices) + [0])
        return self._values[start:start + self._dimensions[-1]].copy()

    # ----- validity -------------------------------------------------------

    def _rows(self) -> np.ndarray:
        """View of the values as (parent configurations, own states)."""
        return self._values.reshape(-1, self._dimensions[-1])

    def normalize(self, epsilon: Optional[float] = None) -> None:
        """Rescale every parent configuration's slice to sum to 1.

        Slices whose sum is at or below *epsilon* (all-zero rows) are
        left untouched.
        """
        if epsilon is None:
            epsilon = InferenceContext.current().epsilon
        rows = self._rows()
        sums = rows.sum(axis=1)
        mask = sums > epsilon
        rows[mask] /= sums[mask, np.newaxis]

    def is_valid(self, tolerance: Optional[float] = None) -> bool:
        """Check that every slice sums to 1 within *tolerance*."""
        if tolerance is None:
            tolerance = InferenceContext.current().tolerance
        sums = self._rows().sum(axis=1)
        return bool(np.all(np.abs(sums - 1.0) <= tolerance))

    # ----- accessors ------------------------------------------------------

    @property
    def dimensions(self) -> Tuple[int, ...]:
        return self._dimensions

    @property
    def strides(self) -> Tuple[int, ...]:
        return self._strides

    @property
    def size(self) -> int:
        return int(self._values.size)

    @property
    def num_parents(self) -> int:
        return len(self._dimensions) - 1

    @property
    def array(self) -> np.ndarray:
        """Copy of the values shaped as ``dimensions``."""
        return self._values.reshape(self._dimensions).copy()

    @property
    def flat_values(self) -> List[float]:
        return self._values.tolist()

    def copy(self) -> "ProbabilityTensor":
        clone = ProbabilityTensor(self._dimensions, parent_ids=self._parent_ids)
        clone._values[:] = self._values
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProbabilityTensor):
            return NotImplemented
        return (
            self._dimensions == other._dimensions
            and self._parent_ids == other._parent_ids
            and np.array_equal(self._values, other._values)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"ProbabilityTensor(dimensions={list(self._dimensions)}, "
            f"parent_ids={list(self._parent_ids) if self._parent_ids is not None else None})"
        )


# Short alias used throughout the docs and examples.
CPT = ProbabilityTensor
