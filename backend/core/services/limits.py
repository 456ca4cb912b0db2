from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

import redis
from django.conf import settings

GLOBAL_KEY = "global"
DEFAULT_WINDOW_SECONDS = 60


class LimitScope:
    GLOBAL = "global"
    FINGERPRINT = "fingerprint"


@dataclass(frozen=True)
class LimitConfig:
    enabled: bool = True
    max_per_window: int = 10
    window_seconds: int = DEFAULT_WINDOW_SECONDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "max_per_window": self.max_per_window,
            "window_seconds": self.window_seconds,
        }


class AdmissionDenied(RuntimeError):
    """A report was dropped by the fixed-window throttle. Not a failure."""

    def __init__(self, scope: str, key: str, limit: LimitConfig):
        super().__init__(f"Admission denied ({scope}): {limit.max_per_window}/{limit.window_seconds}s exhausted")
        self.scope = scope
        self.key = key
        self.limit = limit


class QuotaManager:
    """
    Fixed-window admission counters kept in Redis.

    Every key (a fingerprint, or the reserved ``global`` key) owns one integer
    counter that is created on first use with a ``window_seconds`` TTL and
    disappears when the TTL runs out.

    The read-then-increment in ``allow`` is not atomic. Concurrent callers
    checking the same key can each observe ``count < max`` and all increment,
    so a window may admit a few more than ``max_per_window`` under contention.
    Throttling is best-effort.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        *,
        limit: Optional[LimitConfig] = None,
        namespace: Optional[str] = None,
    ):
        self.redis = redis_client or redis.Redis.from_url(
            getattr(settings, "FAULTLINE_REDIS_URL", None)
            or getattr(settings, "CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
        )
        self.limit = limit or LimitConfig()
        self.namespace = namespace or getattr(settings, "FAULTLINE_QUOTA_NAMESPACE", "faultline:rate_limit")

    @property
    def enabled(self) -> bool:
        return self.limit.enabled

    @property
    def max_per_window(self) -> int:
        return self.limit.max_per_window

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def _current_count(self, redis_key: str) -> int:
        value = self.redis.get(redis_key)
        if value is None:
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    def _increment(self, redis_key: str) -> None:
        if not self.redis.exists(redis_key):
            self.redis.set(redis_key, 1, ex=self.limit.window_seconds)
        else:
            self.redis.incr(redis_key)

    def allow(self, key: str) -> bool:
        """Return True and consume one slot for ``key``, or False when its window is full."""
        if not self.limit.enabled:
            return True

        redis_key = self._key(key)
        if self._current_count(redis_key) >= self.limit.max_per_window:
            return False

        self._increment(redis_key)
        return True

    def allow_global(self) -> bool:
        return self.allow(GLOBAL_KEY)

    def check(self, key: str, *, scope: str = LimitScope.FINGERPRINT) -> None:
        """Raise AdmissionDenied instead of returning False."""
        allowed = self.allow_global() if scope == LimitScope.GLOBAL else self.allow(key)
        if not allowed:
            raise AdmissionDenied(scope=scope, key=key, limit=self.limit)

    def current_usage(self, key: str) -> int:
        return self._current_count(self._key(key))

    def remaining_quota(self, key: str) -> int:
        if not self.limit.enabled:
            return sys.maxsize
        return max(0, self.limit.max_per_window - self.current_usage(key))

    def remaining_global_quota(self) -> int:
        return self.remaining_quota(GLOBAL_KEY)

    def clear(self, key: str) -> None:
        self.redis.delete(self._key(key))

    def clear_global(self) -> None:
        # Only the global counter is reset; fingerprint counters expire on their own.
        self.redis.delete(self._key(GLOBAL_KEY))

    def summary(self) -> Dict[str, Any]:
        return self.limit.to_dict()
