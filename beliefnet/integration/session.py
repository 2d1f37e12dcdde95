"""Status-returning facade over :class:`BayesianNetwork`.

:class:`NetworkSession` suits presentation layers that prefer checking a
return value to handling exceptions.  Every mutating call returns
``True``/``False`` and every query returns its value or ``None``; after a
failure the reason is available from :meth:`NetworkSession.last_error_message`.
A successful call clears the message.

Example
-------
>>> session = NetworkSession()
>>> session.add_variable("Rain", "Rain", ["No", "Yes"])
True
>>> session.add_edge("Rain", "Rain")
False
>>> session.last_error_message()
"Cannot add self-loop on 'Rain'"
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from beliefnet.core.errors import BeliefNetError
from beliefnet.integration.serialization import (
    load_model,
    load_text,
    save_model,
    save_text,
)
from beliefnet.networks.dag import BayesianNetwork

logger = logging.getLogger(__name__)

T = TypeVar("T")

_HANDLED = (BeliefNetError, ValueError)
_HANDLED_IO = _HANDLED + (OSError,)


class NetworkSession:
    """Wrap a network so that engine errors become return values.

    Parameters
    ----------
    network : BayesianNetwork, optional
        Network to operate on.  A new empty one is created by default.
    """

    def __init__(self, network: Optional[BayesianNetwork] = None) -> None:
        self._network = network if network is not None else BayesianNetwork()
        self._error: Optional[str] = None

    @property
    def network(self) -> BayesianNetwork:
        return self._network

    def last_error_message(self) -> Optional[str]:
        """Message of the last failed call, or None after a success."""
        return self._error

    def _call(
        self,
        func: Callable[[], T],
        handled: Tuple[type, ...] = _HANDLED,
    ) -> Tuple[bool, Optional[T]]:
        try:
            value = func()
        except handled as exc:
            self._error = str(exc)
            logger.debug("Session call failed: %s", self._error)
            return False, None
        self._error = None
        return True, value

    # ------------------------------------------------------------------ #
    #  Mutation
    # ------------------------------------------------------------------ #

    def add_variable(self, variable_id: str, name: str, states: Sequence[str]) -> bool:
        ok, _ = self._call(lambda: self._network.add_variable(variable_id, name, states))
        return ok

    def add_edge(self, parent_id: str, child_id: str) -> bool:
        ok, _ = self._call(lambda: self._network.add_edge(parent_id, child_id))
        return ok

    def set_probability(
        self,
        variable_id: str,
        parent_states: Mapping[str, str],
        own_state: str,
        probability: float,
    ) -> bool:
        ok, _ = self._call(
            lambda: self._network.set_probability(
                variable_id, parent_states, own_state, probability
            )
        )
        return ok

    def normalize(self, variable_id: str) -> bool:
        ok, _ = self._call(lambda: self._network.normalize(variable_id))
        return ok

    # ------------------------------------------------------------------ #
    #  Queries
    # ------------------------------------------------------------------ #

    def infer(
        self,
        query: Sequence[str],
        evidence: Optional[Mapping[str, str]] = None,
        method: str = "variable_elimination",
        **kwargs,
    ):
        """Run an inference algorithm; the result, or None on failure."""
        _, result = self._call(
            lambda: self._network.infer(query, dict(evidence or {}), method, **kwargs)
        )
        return result

    def joint_probability(self, assignment: Mapping[str, str]) -> Optional[float]:
        _, value = self._call(lambda: self._network.joint_probability(assignment))
        return value

    def conditional_probability(
        self,
        variable_id: str,
        own_state: str,
        parent_states: Mapping[str, str],
    ) -> Optional[float]:
        _, value = self._call(
            lambda: self._network.conditional_probability(
                variable_id, own_state, parent_states
            )
        )
        return value

    @property
    def variables(self) -> List[Dict[str, object]]:
        """Snapshot of every variable: id, name, states and parents."""
        snapshot = []
        for vid in self._network.variables:
            variable = self._network.get_variable(vid)
            snapshot.append(
                {
                    "id": vid,
                    "name": variable.name,
                    "states": list(variable.states),
                    "parents": variable.sorted_parents,
                }
            )
        return snapshot

    @property
    def edges(self) -> List[Tuple[str, str]]:
        return self._network.edges

    # ------------------------------------------------------------------ #
    #  Persistence
    # ------------------------------------------------------------------ #

    def save(self, filepath: Union[str, Path]) -> bool:
        """Save as JSON if the path ends in ``.json``, else as text."""
        path = Path(filepath)
        writer = save_model if path.suffix.lower() == ".json" else save_text
        ok, _ = self._call(lambda: writer(self._network, path), _HANDLED_IO)
        return ok

    def load(self, filepath: Union[str, Path]) -> bool:
        """Replace the session's network with one read from *filepath*.

        On failure the current network is kept.
        """
        path = Path(filepath)
        reader = load_model if path.suffix.lower() == ".json" else load_text
        ok, network = self._call(lambda: reader(path), _HANDLED_IO)
        if ok:
            self._network = network
        return ok
