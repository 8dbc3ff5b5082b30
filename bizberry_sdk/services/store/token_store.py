"""Token store abstraction for pluggable token storage."""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

USER_TOKEN_KEY = "token_user"
TRANSACTION_TOKEN_KEY = "token_transaction"


@dataclass
class StoredValue:
    """Stored value with its storage options."""
    value: str
    is_persistent: bool = False


class TokenStore(Protocol):
    """Protocol for key/value token storage."""

    async def get(self, key: str) -> Optional[str]:
        """Get stored value, or None if not set."""
        ...

    async def set(self, key: str, value: str, is_persistent: bool = False) -> None:
        """Store value. Persistent values survive the session."""
        ...

    async def delete(self, key: str) -> None:
        """Remove value. Deleting a missing key is not an error."""
        ...
