"""SDK service modules."""
from bizberry_sdk.services.api import APIClient, BinaryContent
from bizberry_sdk.services.auth import TokenLifecycleManager
from bizberry_sdk.services.errors import (
    APIError,
    AuthError,
    BackendError,
    BizberryError,
    ConfigurationError,
    ErrorInfo,
    ErrorKind,
    TokenStoreError,
    TransportError,
)
from bizberry_sdk.services.hooks import HookRegistry
from bizberry_sdk.services.relations import RelationCache

__all__ = [
    "APIClient",
    "BinaryContent",
    "TokenLifecycleManager",
    "APIError",
    "AuthError",
    "BackendError",
    "BizberryError",
    "ConfigurationError",
    "ErrorInfo",
    "ErrorKind",
    "TokenStoreError",
    "TransportError",
    "HookRegistry",
    "RelationCache",
]
