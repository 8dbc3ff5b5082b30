"""Token lifecycle: login, transaction token refresh, critical privilege, logout.

Two tokens make up a session. The user token is long-lived and proves the
user's identity; it is only ever sent to the transaction endpoint. The
transaction token is short-lived, derived from the user token, and is what
authorizes every other request. A transaction token may carry the
"critical" privilege, which the backend requires for sensitive fields.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

from bizberry_sdk.core.logging import mask_token
from bizberry_sdk.services.errors import AuthError, BizberryError, ErrorInfo
from bizberry_sdk.services.payload import InvalidTokenError, TokenPayload, get_payload
from bizberry_sdk.services.session import SessionConfiguration

if TYPE_CHECKING:
    from bizberry_sdk.services.api import APIClient

logger = logging.getLogger(__name__)

USER_AUTH_ENDPOINT = "/access/auth/user"
TRANSACTION_AUTH_ENDPOINT = "/access/auth/transaction"

# Tokens expiring within this window are treated as already expired
DEFAULT_SAFETY_INTERVAL_MS = 30000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenLifecycleManager:
    """Obtains, validates and discards the session tokens."""

    def __init__(self, api: "APIClient", config: SessionConfiguration):
        """
        Args:
            api: Request dispatcher used for the auth endpoints
            config: Session configuration holding the token store
        """
        self.api = api
        self.config = config
        self.safety_interval_ms = config.settings.BIZBERRY_TOKEN_SAFETY_INTERVAL_MS
        # Expiry of the current critical transaction token, None if not critical
        self._critical_until: Optional[datetime] = None
        # include_critical -> in-flight refresh shared by concurrent callers
        self._inflight: Dict[bool, "asyncio.Future[Optional[str]]"] = {}

    # VALIDATION ---------------------------------------------------------------

    def validate_token(self, token: Optional[str], safety_interval_ms: Optional[int] = None) -> bool:
        """Check that a token exists and stays valid for at least the safety interval.

        Args:
            token: Encoded token
            safety_interval_ms: Required remaining lifetime in milliseconds
                (defaults to settings.BIZBERRY_TOKEN_SAFETY_INTERVAL_MS)

        Returns:
            False if the token is missing, undecodable, has no expiry or
            expires in less than the interval; True otherwise
        """
        if not token:
            return False
        if safety_interval_ms is None:
            safety_interval_ms = self.safety_interval_ms

        try:
            payload = get_payload(token)
        except InvalidTokenError as e:
            logger.debug(f"Token {mask_token(token)} not decodable: {e}")
            return False

        if not payload.expiry:
            return False

        remaining_ms = (payload.expiry - _utcnow()).total_seconds() * 1000
        return remaining_ms >= safety_interval_ms

    @property
    def is_critical(self) -> bool:
        """Whether the current transaction token carries critical privilege."""
        return self._critical_until is not None and _utcnow() < self._critical_until

    async def get_user_payload(self) -> Optional[TokenPayload]:
        """Decoded claims of the stored user token, if any."""
        user_token = await self.config.get_user_token()
        if not user_token:
            return None
        try:
            return get_payload(user_token)
        except InvalidTokenError:
            return None

    # TRANSACTION TOKEN --------------------------------------------------------

    async def get_transaction_token(self, include_critical: bool = False) -> Optional[str]:
        """Request a new transaction token with the stored user token.

        Critical privilege is sticky: while the current transaction token is
        critical, a plain refresh asks for critical privilege again. Concurrent
        callers asking for the same privilege share one request.

        Args:
            include_critical: Request critical privilege

        Returns:
            The new transaction token, or None if the backend issued an
            unusable token (the session is logged out in that case)

        Raises:
            AuthError: If no user token is stored
            APIError: If the transaction endpoint call fails
        """
        include_critical = bool(include_critical or self.is_critical)

        pending = self._inflight.get(include_critical)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_transaction_token(include_critical))
            self._inflight[include_critical] = pending
            pending.add_done_callback(lambda fut, key=include_critical: self._forget_inflight(key, fut))
        else:
            logger.debug(f"Joining in-flight transaction token refresh (critical={include_critical})")
        # A cancelled caller must not cancel the refresh the others are waiting on
        return await asyncio.shield(pending)

    def _forget_inflight(self, key: bool, future: "asyncio.Future[Optional[str]]") -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]

    async def _fetch_transaction_token(self, include_critical: bool) -> Optional[str]:
        user_token = await self.config.get_user_token()
        if not user_token:
            raise AuthError(
                "no user token",
                ErrorInfo(
                    url=TRANSACTION_AUTH_ENDPOINT,
                    method="POST",
                    type="AuthError",
                    code="no_user_token",
                    message="User token not set",
                ),
            )

        logger.info(f"Requesting transaction token (critical={include_critical})")
        data = await self.api.post(
            TRANSACTION_AUTH_ENDPOINT,
            {"include_critical": include_critical},
            headers={"Authorization": user_token},
            is_authorized=False,
            expand=False,
        )

        token = _extract_token(data, "transaction")
        if not token:
            logger.warning("Transaction endpoint answered without a token, logging out")
            await self.logout()
            return None
        await self.config.set_transaction_token(token)

        try:
            payload = get_payload(token)
        except InvalidTokenError:
            # Opaque to us; the backend stays the judge of its validity
            logger.debug(f"Stored opaque transaction token {mask_token(token)}")
            self._critical_until = None
            return token

        if not self.validate_token(token):
            logger.warning(f"Backend issued an expiring transaction token {mask_token(token)}, logging out")
            await self.logout()
            return None

        if include_critical or payload.critical:
            self._critical_until = payload.expiry
        else:
            self._critical_until = None

        logger.debug(f"Stored transaction token {mask_token(token)} expiring {payload.expiry}")
        return token

    async def refresh(self) -> Optional[str]:
        """Request a new transaction token (privilege stays as it is)."""
        return await self.get_transaction_token()

    async def force_refresh(self) -> Optional[str]:
        """Request a new transaction token including critical privilege."""
        return await self.get_transaction_token(include_critical=True)

    async def refresh_if_needed(self) -> Optional[str]:
        """Refresh the transaction token only if it is missing or about to expire.

        Runs from liveness and interval triggers, so failures are logged and
        swallowed; the next real request will surface them.
        """
        token = await self.config.get_transaction_token()
        if self.validate_token(token):
            return token
        if not await self.config.get_user_token():
            return None
        try:
            return await self.get_transaction_token()
        except BizberryError as e:
            logger.info(f"Opportunistic token refresh failed: {e}")
            return None

    # LOGIN / LOGOUT -----------------------------------------------------------

    async def login(self, credentials: Mapping[str, Any], include_critical: bool = False) -> Dict[str, Any]:
        """Log in with user credentials and obtain a transaction token.

        Args:
            credentials: Login body, e.g. ``{"id": ..., "password": ...}`` or
                ``{"email": ..., "password": ..., "otp": ...}``
            include_critical: Request critical privilege for the transaction token

        Returns:
            ``{"token": {"user": ..., "transaction": ...}}``

        Raises:
            AuthError: If the backend answered without a user token
            APIError: If the login call fails
        """
        await self.config.clear_transaction_token()
        self._critical_until = None

        body = dict(credentials)
        body["tenant"] = {"id": self.config.tenant}

        logger.info(f"Logging in to tenant {self.config.tenant}")
        data = await self.api.post(USER_AUTH_ENDPOINT, body, is_authorized=False, expand=False)

        user_token = _extract_token(data, "user")
        if not user_token:
            raise AuthError(
                "Login response did not contain a user token",
                ErrorInfo(url=USER_AUTH_ENDPOINT, method="POST", type="AuthError", code="missing_user_token"),
            )
        await self.config.set_user_token(user_token)

        transaction_token = await self.get_transaction_token(include_critical=include_critical)
        return {"token": {"user": user_token, "transaction": transaction_token}}

    async def reauthenticate(self, answer: Union[str, Mapping[str, Any]]) -> Optional[str]:
        """Log in again with critical privilege after the user re-entered a password.

        Args:
            answer: Password string (the user id is taken from the stored user
                token) or a full credentials mapping

        Returns:
            The new critical transaction token
        """
        if isinstance(answer, Mapping):
            credentials = dict(answer)
        else:
            payload = await self.get_user_payload()
            if not payload or not payload.subject:
                raise AuthError(
                    "Cannot re-authenticate without a user token",
                    ErrorInfo(url=USER_AUTH_ENDPOINT, method="POST", type="AuthError", code="no_user_token"),
                )
            credentials = {"id": payload.subject, "password": answer}

        result = await self.login(credentials, include_critical=True)
        return result["token"]["transaction"]

    async def logout(self) -> None:
        """Forget both tokens. Safe to call repeatedly."""
        await self.config.clear_tokens()
        self._critical_until = None
        logger.info("Logged out, session tokens cleared")


def _extract_token(data: Any, name: str) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    token = data.get("token")
    if not isinstance(token, dict):
        return None
    return token.get(name)
