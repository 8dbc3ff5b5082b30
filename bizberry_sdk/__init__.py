"""Async SDK for the bizberry backend."""
from bizberry_sdk.sdk import BizberrySDK
from bizberry_sdk.services import (
    APIClient,
    APIError,
    AuthError,
    BackendError,
    BinaryContent,
    BizberryError,
    ConfigurationError,
    ErrorKind,
    HookRegistry,
    TransportError,
)
from bizberry_sdk.services.store import MemoryTokenStore, RedisTokenStore, TokenStore

__all__ = [
    "BizberrySDK",
    "APIClient",
    "APIError",
    "AuthError",
    "BackendError",
    "BinaryContent",
    "BizberryError",
    "ConfigurationError",
    "ErrorKind",
    "HookRegistry",
    "TransportError",
    "MemoryTokenStore",
    "RedisTokenStore",
    "TokenStore",
]
