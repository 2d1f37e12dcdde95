"""Context manager for inference settings."""

from typing import Optional

PARENT_RESOLUTIONS = ("mode", "marginal")


class InferenceContext:
    """Context manager scoping numerical and algorithmic settings.

    Algorithms read the active context for any setting the caller did not
    pass explicitly.  Contexts nest; leaving one restores the outer one.

    Example:
        >>> with InferenceContext(parent_resolution="marginal"):
        ...     result = belief_propagation(network, ["A"], {"C": "Positive"})
    """

    _active_context: Optional['InferenceContext'] = None

    def __init__(
        self,
        tolerance: float = 1e-6,
        epsilon: float = 1e-10,
        parent_resolution: str = "mode",
        trace_influence: bool = True,
    ):
        """Initialize a new inference context.

        Args:
            tolerance: Allowed deviation from 1.0 when validating tables.
            epsilon: Sums at or below this are treated as zero and left
                unnormalized.
            parent_resolution: How belief propagation treats unobserved
                co-parents: ``"mode"`` (first state upward, message mode
                downward) or ``"marginal"`` (sum them out).
            trace_influence: Default for the influence-tracing flag.
        """
        if parent_resolution not in PARENT_RESOLUTIONS:
            raise ValueError(
                f"parent_resolution must be one of {PARENT_RESOLUTIONS}, "
                f"got {parent_resolution!r}"
            )
        if tolerance < 0 or epsilon < 0:
            raise ValueError("tolerance and epsilon must be non-negative")
        self.tolerance = tolerance
        self.epsilon = epsilon
        self.parent_resolution = parent_resolution
        self.trace_influence = trace_influence
        self._parent_context: Optional['InferenceContext'] = None

    def __enter__(self) -> 'InferenceContext':
        """Enter the context and make it the active one.

        Returns:
            The InferenceContext instance.
        """
        self._parent_context = InferenceContext._active_context
        InferenceContext._active_context = self
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Exit the context, restoring the enclosing one.

        Returns:
            False to propagate any exceptions.
        """
        InferenceContext._active_context = self._parent_context
        return False

    def __repr__(self) -> str:
        return (
            f"InferenceContext(tolerance={self.tolerance}, "
            f"epsilon={self.epsilon}, "
            f"parent_resolution={self.parent_resolution!r}, "
            f"trace_influence={self.trace_influence})"
        )

    @classmethod
    def current(cls) -> 'InferenceContext':
        """Return the active context, or a default one if none is active."""
        if cls._active_context is None:
            return cls()
        return cls._active_context

    @classmethod
    def is_active(cls) -> bool:
        """Check if an InferenceContext is currently active."""
        return cls._active_context is not None
