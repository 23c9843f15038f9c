from aiolimiter import AsyncLimiter
from cachetools import TTLCache

# A bucket idle for one full window has drained, so dropping it loses nothing
WINDOW_SECONDS = 60


class KeyedRateLimiter:
    """One AsyncLimiter per caller key, `per_minute` acquisitions per 60s window."""

    def __init__(self, per_minute: int, max_keys: int = 5000) -> None:
        self._rate = max(1, per_minute)
        self._limiters: TTLCache = TTLCache(maxsize=max_keys, ttl=WINDOW_SECONDS)

    def for_key(self, key: str) -> AsyncLimiter:
        limiter = self._limiters.get(key)
        if limiter is None:
            limiter = AsyncLimiter(self._rate, time_period=WINDOW_SECONDS)
        # re-inserting restarts the key's ttl, so only idle buckets expire
        self._limiters[key] = limiter
        return limiter

    def __len__(self) -> int:
        return len(self._limiters)
