"""Token storage adapters."""
from bizberry_sdk.services.store.token_store import (
    TokenStore,
    StoredValue,
    USER_TOKEN_KEY,
    TRANSACTION_TOKEN_KEY,
)
from bizberry_sdk.services.store.memory_token_store import MemoryTokenStore
from bizberry_sdk.services.store.redis_token_store import RedisTokenStore
from bizberry_sdk.services.store.token_store_factory import get_token_store

__all__ = [
    "TokenStore",
    "StoredValue",
    "USER_TOKEN_KEY",
    "TRANSACTION_TOKEN_KEY",
    "MemoryTokenStore",
    "RedisTokenStore",
    "get_token_store",
]
