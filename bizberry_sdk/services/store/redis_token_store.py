"""Redis-backed token store.

Persistent values are stored without expiry; session values get a TTL so a
crashed host does not leave transaction tokens lying around.
"""
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from bizberry_sdk.core.config import Settings, settings as default_settings
from bizberry_sdk.services.errors import TokenStoreError

logger = logging.getLogger(__name__)

# TTL for non-persistent values
SESSION_TTL_SECONDS = 3600


class RedisTokenStore:
    """Token store adapter over ``redis.asyncio``."""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: Optional[str] = None,
        session_ttl: int = SESSION_TTL_SECONDS,
        settings: Optional[Settings] = None,
    ):
        """Initialize Redis token store.

        Args:
            redis_client: Optional Redis client (defaults to one built from settings.REDIS_URL)
            key_prefix: Prefix for all keys (defaults to settings.REDIS_KEY_PREFIX)
            session_ttl: TTL in seconds for non-persistent values
            settings: Settings to read the Redis URL and key prefix from
                (defaults to the environment)
        """
        settings = settings or default_settings
        self.redis = redis_client or redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        self.key_prefix = key_prefix or settings.REDIS_KEY_PREFIX
        self.session_ttl = session_ttl

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.redis.get(self._make_key(key))
        except RedisError as e:
            logger.warning(f"Error reading {key} from Redis: {e}")
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, is_persistent: bool = False) -> None:
        if value is None:
            await self.delete(key)
            return
        redis_key = self._make_key(key)
        try:
            if is_persistent:
                await self.redis.set(redis_key, value)
            else:
                await self.redis.setex(redis_key, self.session_ttl, value)
        except RedisError as e:
            logger.error(f"Error storing {key} in Redis: {e}")
            raise TokenStoreError(f"Could not store {key}: {e}") from e
        logger.debug(f"Stored {key} in Redis (persistent={is_persistent})")

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._make_key(key))
        except RedisError as e:
            logger.error(f"Error deleting {key} from Redis: {e}")
            raise TokenStoreError(f"Could not delete {key}: {e}") from e
        logger.debug(f"Deleted {key} from Redis")

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self.redis.aclose()
