"""Composition root: one SDK instance per session, passed to whoever needs it."""
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from bizberry_sdk.core.config import Settings, settings as default_settings
from bizberry_sdk.services.api import APIClient
from bizberry_sdk.services.auth import TokenLifecycleManager
from bizberry_sdk.services.hooks import HookRegistry
from bizberry_sdk.services.liveness import Liveness, RefreshScheduler, Unsubscribe
from bizberry_sdk.services.relations import RelationCache
from bizberry_sdk.services.session import SessionConfiguration
from bizberry_sdk.services.store.token_store import TokenStore
from bizberry_sdk.services.store.token_store_factory import get_token_store

logger = logging.getLogger(__name__)


class BizberrySDK:
    """Public entry point bundling the API client, token lifecycle and hooks.

    Resource helpers live in ``bizberry_sdk.plugins`` as plain functions that
    take the SDK as their first argument.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[TokenStore] = None,
        url: Optional[str] = None,
        tenant: Optional[str] = None,
        hooks: Optional[HookRegistry] = None,
        liveness: Optional[Liveness] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            settings: SDK settings (defaults to the environment)
            store: Token store (defaults to settings.BIZBERRY_TOKEN_STORE)
            url: Backend URL (defaults to settings.BIZBERRY_URL)
            tenant: Tenant id (defaults to settings.BIZBERRY_TENANT)
            hooks: Hook registry shared with the host application
            liveness: Source of "app active again" signals for mount()
            http_client: Preconfigured httpx client
        """
        self.settings = settings or default_settings
        self.store = store if store is not None else get_token_store(settings=self.settings)
        self.config = SessionConfiguration(self.store, url=url, tenant=tenant, settings=self.settings)
        self.api = APIClient(self.config, hooks=hooks, http_client=http_client)
        self.liveness = liveness
        self.scheduler = RefreshScheduler(
            self.auth.refresh_if_needed,
            interval=self.settings.BIZBERRY_REFRESH_INTERVAL_SECONDS,
        )
        self._unsubscribe_liveness: Optional[Unsubscribe] = None
        self._refreshing = False

    @property
    def auth(self) -> TokenLifecycleManager:
        return self.api.auth

    @property
    def hooks(self) -> HookRegistry:
        return self.api.hooks

    @property
    def relations(self) -> RelationCache:
        return self.api.relations

    def info(self) -> Dict[str, Any]:
        """Non-secret view of the session configuration."""
        return self.config.info()

    # AUTH ---------------------------------------------------------------------

    async def login(self, credentials: Mapping[str, Any], include_critical: bool = False) -> Dict[str, Any]:
        """Log in and start the refresh interval."""
        result = await self.auth.login(credentials, include_critical=include_critical)
        self.scheduler.start()
        return result

    async def logout(self) -> None:
        """Forget the session tokens and stop the refresh interval."""
        await self.scheduler.stop()
        await self.auth.logout()

    async def refresh(self) -> Optional[str]:
        return await self.auth.refresh()

    async def force_refresh(self) -> Optional[str]:
        return await self.auth.force_refresh()

    async def refresh_if_needed(self) -> Optional[str]:
        return await self.auth.refresh_if_needed()

    def validate_token(self, token: Optional[str], safety_interval_ms: Optional[int] = None) -> bool:
        return self.auth.validate_token(token, safety_interval_ms)

    def add_hook(self, name: str, callback: Callable[..., Any], override: bool = False) -> None:
        self.hooks.add_hook(name, callback, override=override)

    def del_hook(self, name: str, callback: Callable[..., Any]) -> None:
        self.hooks.del_hook(name, callback)

    # LIVENESS -----------------------------------------------------------------

    def mount(self) -> None:
        """Refresh tokens whenever the liveness source reports activity."""
        if self.liveness is None or self._unsubscribe_liveness is not None:
            return
        self._unsubscribe_liveness = self.liveness.subscribe(self._on_active)

    def unmount(self) -> None:
        """Stop reacting to liveness signals."""
        if self._unsubscribe_liveness is not None:
            self._unsubscribe_liveness()
            self._unsubscribe_liveness = None

    async def _on_active(self) -> None:
        # Several signals in a row (focus + visibility) refresh once
        if self._refreshing:
            return
        self._refreshing = True
        try:
            await self.auth.refresh_if_needed()
        finally:
            self._refreshing = False

    # LIFECYCLE ----------------------------------------------------------------

    async def reset(self) -> None:
        """Log out and drop cached relations."""
        await self.logout()
        self.relations.reset()

    async def close(self) -> None:
        """Stop background work and close the HTTP client."""
        self.unmount()
        await self.scheduler.stop()
        await self.api.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
