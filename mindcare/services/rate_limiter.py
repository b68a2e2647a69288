"""Per-patient chat send quota backed by Redis."""

import logging
import uuid

from redis import Redis

from mindcare.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, message: str, reset_time: int = 0) -> None:
        super().__init__(message)
        self.reset_time = reset_time


class RateLimiter:
    """Fixed-window counters stored in Redis with automatic expiration."""

    KEY_PREFIX = "rate_limit"
    DEFAULT_WINDOW_SECONDS = 3600  # 1 hour

    def __init__(
        self,
        redis_client: Redis | None = None,  # type: ignore[type-arg]
        settings: Settings | None = None,
        window_seconds: int | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._redis: Redis | None = redis_client  # type: ignore[type-arg]
        self.window_seconds = window_seconds or self.DEFAULT_WINDOW_SECONDS

    @property
    def redis(self) -> Redis:  # type: ignore[type-arg]
        """Get or create Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = Redis.from_url(str(self.settings.redis_url))
        return self._redis

    def _make_key(self, key_type: str, identifier: str) -> str:
        return f"{self.KEY_PREFIX}:{key_type}:{identifier}"

    async def check_and_increment(
        self,
        key_type: str,
        identifier: uuid.UUID | str,
        max_requests: int,
    ) -> dict[str, int]:
        """Count one request and fail if the window is already full.

        The expiry is only set when the key is created, so the window does
        not slide forward with every request.

        Args:
            key_type: Type of rate limit (e.g., "chat")
            identifier: Unique identifier (e.g., patient_id)
            max_requests: Maximum requests allowed in the window

        Returns:
            Dict with current_count, remaining, and reset_time

        Raises:
            RateLimitExceeded: If rate limit is exceeded
        """
        key = self._make_key(key_type, str(identifier))

        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds, nx=True)
        pipe.ttl(key)
        results = pipe.execute()

        new_count = int(results[0])
        ttl = int(results[2])
        reset_time = ttl if ttl > 0 else self.window_seconds

        if new_count > max_requests:
            logger.info("Rate limit exceeded for %s", key)
            raise RateLimitExceeded(
                f"Rate limit exceeded. Max {max_requests} messages per "
                f"{self.window_seconds // 60} minutes.",
                reset_time=reset_time,
            )

        return {
            "current_count": new_count,
            "remaining": max_requests - new_count,
            "reset_time": reset_time,
        }

    async def get_usage(
        self,
        key_type: str,
        identifier: uuid.UUID | str,
    ) -> dict[str, int]:
        """Get current usage without incrementing."""
        key = self._make_key(key_type, str(identifier))

        pipe = self.redis.pipeline()
        pipe.get(key)
        pipe.ttl(key)
        current, ttl = pipe.execute()

        return {
            "current_count": int(current) if current else 0,
            "reset_time": max(0, int(ttl)),
        }


class ChatRateLimiter:
    """Chat send quota per patient, sized by ``chat_rate_limit_per_hour``."""

    RATE_LIMIT_TYPE = "chat"

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._rate_limiter = rate_limiter or RateLimiter(settings=self.settings)

    @property
    def max_requests(self) -> int:
        """Get maximum chat requests per hour from settings."""
        return self.settings.chat_rate_limit_per_hour

    async def check_and_consume(self, patient_id: uuid.UUID) -> dict[str, int]:
        """Consume one message from the patient's quota.

        Raises:
            RateLimitExceeded: If the patient has no messages left this hour
        """
        return await self._rate_limiter.check_and_increment(
            key_type=self.RATE_LIMIT_TYPE,
            identifier=patient_id,
            max_requests=self.max_requests,
        )

    async def get_remaining(self, patient_id: uuid.UUID) -> int:
        """Messages the patient may still send this hour."""
        usage = await self._rate_limiter.get_usage(
            key_type=self.RATE_LIMIT_TYPE,
            identifier=patient_id,
        )
        return max(0, self.max_requests - usage["current_count"])
