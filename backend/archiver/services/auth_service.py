import logging
import threading
import time
from dataclasses import dataclass

from archiver.config import Settings, settings
from archiver.utils.security import generate_token, verify_password

logger = logging.getLogger(__name__)


@dataclass
class AdminContext:
    username: str
    token: str


def authorize(username: str | None, password: str | None, config: Settings | None = None) -> str | None:
    """Check administrator credentials; returns the username on success."""
    config = config or settings
    if not username or not password:
        return None
    if not config.admin_password_hash:
        logger.warning("Login attempted but no administrator password hash is configured")
        return None
    if username != config.admin_username:
        return None
    if not verify_password(config.admin_password_hash, password):
        return None
    return username


class SessionRegistry:
    """Bearer tokens for signed-in administrators, held in memory."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._sessions: dict[str, tuple[str, float]] = {}  # token -> (username, expires_at)
        self._lock = threading.Lock()

    def _cleanup_expired(self) -> None:
        now = time.time()
        self._sessions = {t: s for t, s in self._sessions.items() if s[1] > now}

    def issue(self, username: str) -> str:
        token = generate_token()
        with self._lock:
            self._cleanup_expired()
            self._sessions[token] = (username, time.time() + self.ttl_seconds)
        return token

    def validate(self, token: str) -> str | None:
        with self._lock:
            self._cleanup_expired()
            session = self._sessions.get(token)
        return session[0] if session else None

    def revoke(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
