"""In-memory token store."""
import logging
from typing import Dict, Optional

from bizberry_sdk.services.store.token_store import StoredValue

logger = logging.getLogger(__name__)


class MemoryTokenStore:
    """Token store backed by a dict. Nothing outlives the process."""

    def __init__(self, values: Optional[Dict[str, StoredValue]] = None):
        self.values: Dict[str, StoredValue] = values if values is not None else {}

    async def get(self, key: str) -> Optional[str]:
        entry = self.values.get(key)
        return entry.value if entry else None

    async def set(self, key: str, value: str, is_persistent: bool = False) -> None:
        if value is None:
            await self.delete(key)
            return
        self.values[key] = StoredValue(value=value, is_persistent=is_persistent)
        logger.debug(f"Stored {key} (persistent={is_persistent})")

    async def delete(self, key: str) -> None:
        if self.values.pop(key, None) is not None:
            logger.debug(f"Deleted {key}")

    def is_persistent(self, key: str) -> bool:
        """Whether the stored value was flagged persistent."""
        entry = self.values.get(key)
        return bool(entry and entry.is_persistent)
