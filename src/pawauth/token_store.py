# Token Store - in-memory bearer token state for one client instance.
# Created: 2026-10-19
#
# Reads and writes go through a lock so a reader never sees a new access
# token paired with the previous expiry.

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class TokenState:
    """Current token set. ``expires_at`` is a Unix timestamp; None never expires."""

    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: float | None = None


@dataclass(frozen=True)
class TokenSnapshot:
    """Read-only view handed to callers."""

    access_token: str | None
    refresh_token: str | None
    expires_in: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
        }
        if self.expires_in is not None:
            data["expires_in"] = self.expires_in
        return data


def _parse_expires_in(value: Any) -> float | None:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed expires_in value: %r", value)
        return None
    return max(seconds, 0.0)


class TokenStore:
    """Holds the access/refresh token pair and its expiry."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._state = TokenState()
        self._lock = threading.Lock()

    @property
    def access_token(self) -> str | None:
        with self._lock:
            return self._state.access_token

    @property
    def refresh_token(self) -> str | None:
        with self._lock:
            return self._state.refresh_token

    @property
    def expires_at(self) -> float | None:
        with self._lock:
            return self._state.expires_at

    def set_tokens(self, payload: Mapping[str, Any]) -> None:
        """Overwrite the fields present in *payload*; absent fields are kept."""
        expires_at = None
        if payload.get("expires_in"):
            seconds = _parse_expires_in(payload["expires_in"])
            if seconds is not None:
                expires_at = self._clock() + seconds

        with self._lock:
            if payload.get("access_token"):
                self._state.access_token = payload["access_token"]
            if payload.get("refresh_token"):
                self._state.refresh_token = payload["refresh_token"]
            if expires_at is not None:
                self._state.expires_at = expires_at

    def set_access_token(self, access_token: str | None) -> None:
        with self._lock:
            self._state.access_token = access_token

    def is_valid(self, now: float | None = None) -> bool:
        if now is None:
            now = self._clock()
        with self._lock:
            if not self._state.access_token:
                return False
            return self._state.expires_at is None or self._state.expires_at > now

    def snapshot(self) -> TokenSnapshot:
        now = self._clock()
        with self._lock:
            state = self._state
            expires_in = state.expires_at - now if state.expires_at is not None else None
            return TokenSnapshot(
                access_token=state.access_token,
                refresh_token=state.refresh_token,
                expires_in=expires_in,
            )
