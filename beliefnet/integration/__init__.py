"""Persistence and presentation-layer integration."""

from beliefnet.integration.serialization import (
    load_model,
    load_text,
    save_model,
    save_text,
)
from beliefnet.integration.session import NetworkSession

__all__ = [
    "NetworkSession",
    "load_model",
    "load_text",
    "save_model",
    "save_text",
]
