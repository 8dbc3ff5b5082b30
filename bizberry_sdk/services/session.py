"""Session configuration: backend location, tenant and the session tokens."""
import logging
from typing import Optional

from bizberry_sdk.core.config import Settings, settings as default_settings
from bizberry_sdk.services.errors import ConfigurationError
from bizberry_sdk.services.store.token_store import (
    TRANSACTION_TOKEN_KEY,
    USER_TOKEN_KEY,
    TokenStore,
)

logger = logging.getLogger(__name__)


class SessionConfiguration:
    """Per-engine session state.

    Tokens live in the token store; this class is the only thing that writes
    them, so the store keys stay an implementation detail.
    """

    def __init__(
        self,
        store: TokenStore,
        url: Optional[str] = None,
        tenant: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.store = store
        self.url = (url if url is not None else self.settings.BIZBERRY_URL).rstrip('/')
        self.tenant = tenant if tenant is not None else self.settings.BIZBERRY_TENANT

    def require_url(self) -> str:
        """Backend base URL, or ConfigurationError if none is configured."""
        if not self.url:
            raise ConfigurationError("SDK has no URL configured to send requests to.")
        return self.url

    async def get_user_token(self) -> Optional[str]:
        return await self.store.get(USER_TOKEN_KEY)

    async def set_user_token(self, token: str) -> None:
        await self.store.set(USER_TOKEN_KEY, token, is_persistent=True)

    async def get_transaction_token(self) -> Optional[str]:
        return await self.store.get(TRANSACTION_TOKEN_KEY)

    async def set_transaction_token(self, token: str) -> None:
        await self.store.set(TRANSACTION_TOKEN_KEY, token)

    async def clear_transaction_token(self) -> None:
        await self.store.delete(TRANSACTION_TOKEN_KEY)

    async def clear_tokens(self) -> None:
        await self.store.delete(USER_TOKEN_KEY)
        await self.store.delete(TRANSACTION_TOKEN_KEY)

    def info(self) -> dict:
        """Non-secret view of the configuration."""
        return {"url": self.url, "tenant": self.tenant}
