from __future__ import annotations
import hmac
import time
from datetime import datetime, timedelta, timezone
from typing import Any
import jwt
from p100.config import settings

JWT_ALG = "HS256"
ADMIN_TOKEN_TYPE = "admin"


def check_secret(given: str | None, expected: str) -> bool:
    # An unset secret never matches
    if not expected or given is None:
        return False
    return hmac.compare_digest(given.encode(), expected.encode())


def _make_token(sub: str, ttl_min: int, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "type": token_type,
        "iat": now.timestamp(),
        "exp": int((now + timedelta(minutes=ttl_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)


def make_admin_token() -> str:
    return _make_token("admin", settings.admin_token_ttl_min, ADMIN_TOKEN_TYPE)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])


class LoginThrottle:
    """
    Failed admin logins per client. After max_attempts failures the client is locked for lockout_seconds.
    Process-local; a restart forgets everything.
    """

    def __init__(self, max_attempts: int, lockout_seconds: int, clock=time.monotonic):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._failures: dict[str, int] = {}
        self._locked_until: dict[str, float] = {}

    def retry_after(self, client: str) -> int:
        """Seconds left on the lock, 0 when not locked."""
        until = self._locked_until.get(client)
        if until is None:
            return 0
        left = until - self._clock()
        if left <= 0:
            self._locked_until.pop(client, None)
            self._failures.pop(client, None)
            return 0
        return int(left) + 1

    def fail(self, client: str) -> None:
        n = self._failures.get(client, 0) + 1
        self._failures[client] = n
        if n >= self.max_attempts:
            self._locked_until[client] = self._clock() + self.lockout_seconds

    def succeed(self, client: str) -> None:
        self._failures.pop(client, None)
        self._locked_until.pop(client, None)

    def reset(self) -> None:
        self._failures.clear()
        self._locked_until.clear()


login_throttle = LoginThrottle(settings.max_login_attempts, settings.login_lockout_seconds)
