"""Per-IP fixed-window limits for the session endpoints.

Counters live in process memory, so with several workers each worker keeps
its own window.
"""

from __future__ import annotations

from dataclasses import dataclass

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from app.core.config import settings
from app.core.errors import RateLimitError

storage = MemoryStorage()
_strategy = FixedWindowRateLimiter(storage)


@dataclass(frozen=True)
class RouteLimit:
    name: str
    setting: str
    message: str

    def check(self, key: str) -> None:
        item = parse(getattr(settings, self.setting))
        if not _strategy.hit(item, self.name, key):
            raise RateLimitError(self.message, retry_after=item.get_expiry())


REFRESH_LIMIT = RouteLimit(
    name="auth-refresh",
    setting="RATE_LIMIT_REFRESH",
    message="Too many refresh token requests, please try again later.",
)

LOGOUT_LIMIT = RouteLimit(
    name="auth-logout",
    setting="RATE_LIMIT_LOGOUT",
    message="Too many logout requests, please try again later.",
)
