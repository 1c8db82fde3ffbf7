"""
In-memory conversation sessions for multi-step front ends (chat bots, wizards).

Keyed by (owner_id, conversation_id) with an idle TTL. A store is created by
whoever needs one and passed around explicitly; expired entries are invisible
and are dropped the next time they are touched or on purge_expired().
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

SessionKey = tuple[str, str]


class ConversationSessionStore:
    """Thread-safe TTL store of per-conversation state dicts."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # key → (expires_at, state)
        self._entries: dict[SessionKey, tuple[float, dict[str, Any]]] = {}

    # ------------------------------------------------------------------
    def _live(self, key: SessionKey) -> Optional[dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, state = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return state

    # ------------------------------------------------------------------
    def get(self, owner_id: str, conversation_id: str) -> Optional[dict[str, Any]]:
        """Return the session state, or None if absent or expired. Does not extend the TTL."""
        with self._lock:
            state = self._live((owner_id, conversation_id))
            return dict(state) if state is not None else None

    def put(self, owner_id: str, conversation_id: str, state: dict[str, Any]) -> None:
        """Replace the session state and restart its TTL."""
        with self._lock:
            self._entries[(owner_id, conversation_id)] = (
                self._clock() + self.ttl_seconds,
                dict(state),
            )

    def update(
        self, owner_id: str, conversation_id: str, changes: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge changes into the live state (starting empty if none) and restart the TTL."""
        key = (owner_id, conversation_id)
        with self._lock:
            state = dict(self._live(key) or {})
            state.update(changes)
            self._entries[key] = (self._clock() + self.ttl_seconds, state)
            return dict(state)

    def pop(self, owner_id: str, conversation_id: str) -> Optional[dict[str, Any]]:
        """Remove the session and return its last live state."""
        key = (owner_id, conversation_id)
        with self._lock:
            state = self._live(key)
            self._entries.pop(key, None)
            return state

    def purge_expired(self) -> int:
        """Evict every expired session; returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
