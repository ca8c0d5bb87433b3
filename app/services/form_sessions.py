"""In-memory reservation form sessions keyed by session id."""

from __future__ import annotations

import uuid
from threading import Lock
from typing import Dict, Optional

from app.services.reservation_form import ReservationForm


class FormSessionStore:
    """Thread-safe store that keeps one form controller per browser session."""

    def __init__(self, max_sessions: int = 500) -> None:
        self._max_sessions = max_sessions
        self._store: Dict[str, ReservationForm] = {}
        self._lock = Lock()

    def create(self, form: ReservationForm) -> str:
        """Register a form and return its new session id."""

        session_id = uuid.uuid4().hex
        with self._lock:
            # evict oldest
            while len(self._store) >= self._max_sessions:
                self._store.pop(next(iter(self._store)))
            self._store[session_id] = form
        return session_id

    def get(self, session_id: str) -> Optional[ReservationForm]:
        with self._lock:
            return self._store.get(session_id)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._store.pop(session_id, None)

    def clear(self) -> None:
        """Remove every stored session. Intended for tests only."""

        with self._lock:
            self._store.clear()


form_sessions = FormSessionStore()
