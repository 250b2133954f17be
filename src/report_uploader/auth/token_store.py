"""
In-process store for signed-in users' Graph access tokens.

Work-account tokens run to several kilobytes, which does not fit in a signed
cookie next to the rest of the session. The session only carries the random
key of an entry here. Entries live in memory and are lost on restart, after
which the user signs in again.
"""
import logging
import secrets
import threading
import time
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class TokenStore:
    """Thread-safe mapping of session keys to access tokens with a fixed lifetime."""

    def __init__(self, max_age_seconds: int):
        self.max_age_seconds = max_age_seconds
        self._tokens: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def put(self, access_token: str) -> str:
        """Keep `access_token` and return the key to store in the session."""
        key = secrets.token_urlsafe(32)
        expires_at = time.monotonic() + self.max_age_seconds
        with self._lock:
            self._purge_expired()
            self._tokens[key] = (access_token, expires_at)
        return key

    def get(self, key: Optional[str]) -> Optional[str]:
        if not key:
            return None
        with self._lock:
            entry = self._tokens.get(key)
            if entry is None:
                return None
            access_token, expires_at = entry
            if expires_at <= time.monotonic():
                del self._tokens[key]
                return None
            return access_token

    def discard(self, key: Optional[str]) -> None:
        if not key:
            return
        with self._lock:
            self._tokens.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def _purge_expired(self) -> None:
        now = time.monotonic()
        expired = [key for key, (_, expires_at) in self._tokens.items() if expires_at <= now]
        for key in expired:
            del self._tokens[key]
        if expired:
            logger.debug("Dropped %d expired session tokens", len(expired))
