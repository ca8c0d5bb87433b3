"""Service package public API definitions.

Service implementations are imported lazily. ``app.clients.supabase`` imports
``app.services.exceptions``, which executes this module first; importing the
services eagerly here would pull the client back in and create a circular
import during start up.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "FormSessionStore",
    "ReservationForm",
    "ReservationService",
]

_SERVICE_MODULES = {
    "FormSessionStore": "form_sessions",
    "ReservationForm": "reservation_form",
    "ReservationService": "reservation",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .form_sessions import FormSessionStore as FormSessionStore
    from .reservation import ReservationService as ReservationService
    from .reservation_form import ReservationForm as ReservationForm
