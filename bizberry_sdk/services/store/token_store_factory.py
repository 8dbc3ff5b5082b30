"""Factory for getting the configured token store."""
from typing import Optional

from bizberry_sdk.core.config import Settings, settings as default_settings
from bizberry_sdk.services.store.memory_token_store import MemoryTokenStore
from bizberry_sdk.services.store.redis_token_store import RedisTokenStore
from bizberry_sdk.services.store.token_store import TokenStore


def get_token_store(store_type: Optional[str] = None, settings: Optional[Settings] = None) -> TokenStore:
    """Get a token store for the given type.

    Args:
        store_type: "memory" or "redis" (defaults to settings.BIZBERRY_TOKEN_STORE)
        settings: Settings the store is configured from (defaults to the environment)

    Returns:
        Token store instance
    """
    settings = settings or default_settings
    store_type = (store_type or settings.BIZBERRY_TOKEN_STORE).lower()

    if store_type == "redis":
        return RedisTokenStore(settings=settings)
    if store_type == "memory":
        return MemoryTokenStore()
    raise ValueError(f"Unknown token store type: {store_type}")
