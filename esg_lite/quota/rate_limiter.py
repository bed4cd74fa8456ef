import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from esg_lite.config.settings import Settings
from esg_lite.database.repositories.rate_limit_repository import RateLimitRepository
from esg_lite.logging.logger import Log
from esg_lite.queue.surge import SurgeSchedule
from esg_lite.quota.exceptions import RateLimitExceededError
from esg_lite.quota.models import RateLimitResult


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RateLimiter:
    """Fixed-window request counter with per-tier limits.

    Fails open: when the backing store cannot be read the request is allowed
    and the failure is logged.
    """

    DEFAULT_TIER = "FREE"

    def __init__(
        self,
        store: RateLimitRepository,
        *,
        window_seconds: int,
        tier_limits: dict[str, int],
        surge: SurgeSchedule | None = None,
        surge_factor: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._window_seconds = window_seconds
        self._tier_limits = {tier.upper(): limit for tier, limit in tier_limits.items()}
        self._surge = surge
        self._surge_factor = surge_factor
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: RateLimitRepository,
        surge: SurgeSchedule | None = None,
    ) -> "RateLimiter":
        return cls(
            store,
            window_seconds=settings.rate_limit_window_seconds,
            tier_limits=settings.rate_limit_tiers,
            surge=surge,
            surge_factor=settings.rate_limit_surge_factor,
        )

    def limit_for(self, tier: str, now: datetime | None = None) -> int:
        """Requests allowed per window for ``tier``, reduced during surge windows."""
        tier_key = tier.upper()
        base = self._tier_limits.get(tier_key, self._tier_limits.get(self.DEFAULT_TIER, 1))
        if self._surge is not None and self._surge.is_surge(now):
            return max(1, math.floor(base * self._surge_factor))
        return base

    def window_start(self, now: datetime) -> datetime:
        epoch = now.timestamp()
        start = math.floor(epoch / self._window_seconds) * self._window_seconds
        return datetime.fromtimestamp(start, UTC)

    def check_limit(self, key: str, tier: str = DEFAULT_TIER) -> RateLimitResult:
        now = self._clock()
        window_start = self.window_start(now)
        reset_at = window_start + timedelta(seconds=self._window_seconds)
        limit = self.limit_for(tier, now)

        try:
            count = self._store.current_count(key, window_start)
        except Exception as exc:
            Log.warning(
                "Rate limit store unavailable, allowing request",
                key=key,
                error=str(exc),
            )
            return RateLimitResult(
                allowed=True,
                remaining=limit,
                limit=limit,
                reset_at=reset_at,
                reason="ERROR_FALLBACK",
                subscription_tier=tier,
            )

        if count >= limit:
            retry_after = max(1, math.ceil((reset_at - now).total_seconds()))
            Log.info("Rate limit exceeded", key=key, count=count, limit=limit, tier=tier)
            return RateLimitResult(
                allowed=False,
                remaining=0,
                limit=limit,
                reset_at=reset_at,
                retry_after_seconds=retry_after,
                reason="RATE_LIMIT_EXCEEDED",
                subscription_tier=tier,
            )

        return RateLimitResult(
            allowed=True,
            remaining=limit - count,
            limit=limit,
            reset_at=reset_at,
            subscription_tier=tier,
        )

    def increment_counter(self, key: str) -> None:
        """Count one admitted request. Call only after the gated action succeeded."""
        window_start = self.window_start(self._clock())
        try:
            self._store.increment(key, window_start)
        except Exception as exc:
            Log.warning("Failed to increment rate limit counter", key=key, error=str(exc))

    def cleanup_expired(self) -> int:
        """Drop counters older than two windows."""
        cutoff = self.window_start(self._clock()) - timedelta(seconds=2 * self._window_seconds)
        try:
            return self._store.delete_older_than(cutoff)
        except Exception as exc:
            Log.warning("Failed to clean up rate limit counters", error=str(exc))
            return 0

    def ensure_allowed(self, key: str, tier: str = DEFAULT_TIER) -> RateLimitResult:
        """Check the limit and raise when the request must be rejected.

        Raises:
            RateLimitExceededError: if the window is exhausted.
        """
        result = self.check_limit(key, tier)
        if not result.allowed:
            raise RateLimitExceededError(result)
        return result
