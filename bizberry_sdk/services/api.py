"""bizberry REST API client: authenticated dispatch with a fixed retry table."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

import httpx

from bizberry_sdk.services.auth import TokenLifecycleManager
from bizberry_sdk.services.errors import (
    APIError,
    AuthError,
    BackendError,
    ErrorInfo,
    TransportError,
)
from bizberry_sdk.services.hooks import USER_PASSWORD_INPUT, HookRegistry
from bizberry_sdk.services.params import querify
from bizberry_sdk.services.relations import RelationCache
from bizberry_sdk.services.session import SessionConfiguration

logger = logging.getLogger(__name__)

# Success statuses outside 2xx (402: payment required still carries a body)
EXTRA_SUCCESS_STATUSES = frozenset({402})


@dataclass
class BinaryContent:
    """Opaque result for 204 and non-JSON responses. Never expanded."""
    content: bytes
    content_type: str
    status: int


class AuthAction(str, Enum):
    """What to do about an authentication failure."""
    CRITICAL_REFRESH = "critical_refresh"
    CRITICAL_REAUTH = "critical_reauth"
    REFRESH_AND_RETURN = "refresh_and_return"
    REFRESH_AND_RETRY = "refresh_and_retry"
    LOGOUT = "logout"


@dataclass(frozen=True)
class AuthRule:
    """One row of the failure classification table. ``None`` codes match any code."""
    status: int
    types: FrozenSet[str]
    codes: Optional[FrozenSet[str]]
    action: AuthAction

    def matches(self, status: Optional[int], error_type: Optional[str], code: Optional[str]) -> bool:
        if status != self.status or error_type not in self.types:
            return False
        return self.codes is None or code in self.codes


# First matching rule wins
AUTH_RULES: Tuple[AuthRule, ...] = (
    AuthRule(
        403,
        frozenset({"JWTClaimsError", "FieldAccessError"}),
        frozenset({"required_audience_missing", "access_error.field_is_critical"}),
        AuthAction.CRITICAL_REFRESH,
    ),
    AuthRule(401, frozenset({"AuthError"}), frozenset({"token_too_old_for_include_critical"}), AuthAction.CRITICAL_REAUTH),
    AuthRule(401, frozenset({"AuthError"}), frozenset({"invalid_user_token"}), AuthAction.REFRESH_AND_RETURN),
    AuthRule(401, frozenset({"AuthError"}), None, AuthAction.LOGOUT),
    AuthRule(401, frozenset({"ExpiredSignatureError"}), None, AuthAction.REFRESH_AND_RETRY),
    AuthRule(401, frozenset({"JWTError"}), None, AuthAction.LOGOUT),
)


def classify_failure(status: Optional[int], error_type: Optional[str], code: Optional[str]) -> Optional[AuthAction]:
    """Look up the action for a failed response, None if it is not an auth failure we handle."""
    for rule in AUTH_RULES:
        if rule.matches(status, error_type, code):
            return rule.action
    return None


def _has_authorization(headers: Mapping[str, Any]) -> bool:
    return any(key.lower() == "authorization" and value for key, value in headers.items())


class APIClient:
    """Client for the bizberry REST API.

    Resolves the Authorization header from the session's transaction token,
    turns auth failures into at most one refresh-and-retry, and expands
    ``$rel`` pointers in successful JSON responses.
    """

    def __init__(
        self,
        config: SessionConfiguration,
        hooks: Optional[HookRegistry] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_relation_depth: Optional[int] = None,
    ):
        """
        Initialize API client.

        Args:
            config: Session configuration (backend URL, tenant, token store)
            hooks: Hook registry for interactive re-authentication
            http_client: Optional preconfigured httpx client (closed by the caller)
            max_relation_depth: Depth limit for ``$rel`` expansion
                (defaults to settings.BIZBERRY_RELATION_MAX_DEPTH)
        """
        self.config = config
        self.hooks = hooks if hooks is not None else HookRegistry()
        self.auth = TokenLifecycleManager(self, config)
        self.relations = RelationCache(
            self,
            max_depth=max_relation_depth or config.settings.BIZBERRY_RELATION_MAX_DEPTH,
        )

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.settings.BIZBERRY_TIMEOUT,
            verify=config.settings.BIZBERRY_VERIFY_SSL,
        )

    # VERBS --------------------------------------------------------------------

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        """GET convenience method."""
        return await self.request("GET", endpoint, params=params, **kwargs)

    async def post(
        self,
        endpoint: str,
        data: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> Any:
        """POST convenience method."""
        return await self.request("POST", endpoint, params=params, data=data, headers=headers, **kwargs)

    async def patch(self, endpoint: str, data: Any = None, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        """PATCH convenience method."""
        return await self.request("PATCH", endpoint, params=params, data=data, **kwargs)

    async def put(self, endpoint: str, data: Any = None, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        """PUT convenience method."""
        return await self.request("PUT", endpoint, params=params, data=data, **kwargs)

    async def delete(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        """DELETE convenience method."""
        return await self.request("DELETE", endpoint, params=params, **kwargs)

    # DISPATCH -----------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        is_authorized: bool = True,
        retry: int = 1,
        expand: bool = True,
    ) -> Any:
        """
        Make an API request.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: Path relative to the backend URL, e.g. "/access/users/self"
            params: Query parameters (list values repeat the key)
            data: JSON body
            headers: Extra headers; an explicit Authorization header is used as is
            is_authorized: Attach the transaction token and apply the auth retry table
            retry: Remaining retry budget for this call chain
            expand: Resolve ``$rel`` pointers in the response

        Returns:
            Parsed JSON body, ``BinaryContent`` for 204/non-JSON responses, or
            None when an invalid user token was answered with a token refresh

        Raises:
            ConfigurationError: If no backend URL is configured
            AuthError: If authentication fails and cannot be recovered
            TransportError: If the backend cannot be reached (status -1)
            BackendError: For any other error response
        """
        base_url = self.config.require_url()
        method = method.upper()

        query = querify(params)
        url = f"{base_url}{endpoint}" + (f"?{query}" if query else "")

        request_headers = {
            "accept": "application/json",
            "content-type": "application/json",
        }
        request_headers.update(headers or {})
        if is_authorized and not _has_authorization(request_headers):
            request_headers["Authorization"] = await self._authorization(method, endpoint, params)

        logger.debug(f"Making {method} request to: {url}")
        try:
            response = await self._client.request(
                method,
                url,
                headers=request_headers,
                json=data,
            )
        except httpx.RequestError as e:
            info = ErrorInfo(url=endpoint, method=method, params=dict(params or {}), status=-1, message=str(e))
            if retry > 0:
                logger.warning(f"Network error on {method} {endpoint}: {e}. Retrying...")
                return await self.request(method, endpoint, params, data, headers, is_authorized, retry - 1, expand)
            raise TransportError("Network error", info) from e

        status = response.status_code
        content_type = response.headers.get("content-type", "")
        success = response.is_success or status in EXTRA_SUCCESS_STATUSES

        if status == 204 or ("application/json" not in content_type and success):
            logger.debug(f"{method} {endpoint} returned {status} {content_type or 'no content'}")
            return BinaryContent(content=response.content, content_type=content_type, status=status)

        body = self._parse_json(response)

        if success:
            if body is None:
                raise BackendError(
                    "Invalid JSON response",
                    ErrorInfo(url=endpoint, method=method, params=dict(params or {}), status=status),
                )
            if expand:
                body = await self.relations.enrich(body)
            return body

        info = ErrorInfo.from_envelope(body, url=endpoint, method=method, params=params, status=status)
        logger.debug(f"{method} {endpoint} failed: {status} {info.type} {info.code}")

        action = classify_failure(status, info.type, info.code) if is_authorized else None
        if action is not None:
            return await self._handle_auth_failure(action, info, method, endpoint, params, data, headers, retry, expand)

        raise self._error_for(info)

    async def _handle_auth_failure(
        self,
        action: AuthAction,
        info: ErrorInfo,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        data: Any,
        headers: Optional[Dict[str, str]],
        retry: int,
        expand: bool,
    ) -> Any:
        """Carry out one row of the classification table."""

        async def again() -> Any:
            # Caller's headers only; the Authorization header is resolved anew
            return await self.request(method, endpoint, params, data, headers, True, retry - 1, expand)

        if action == AuthAction.CRITICAL_REFRESH:
            if retry > 0:
                logger.info(f"{method} {endpoint} needs critical privilege, refreshing transaction token")
                await self.auth.force_refresh()
                return await again()

        elif action == AuthAction.CRITICAL_REAUTH:
            if retry > 0:
                logger.info(f"{method} {endpoint} needs a fresh login for critical privilege")
                await self._reauthenticate(info)
                return await again()

        elif action == AuthAction.REFRESH_AND_RETURN:
            logger.warning(f"{method} {endpoint} rejected the user token, refreshing without retry")
            await self.auth.refresh()
            return None

        elif action == AuthAction.REFRESH_AND_RETRY:
            if retry > 0:
                logger.info(f"Transaction token expired on {method} {endpoint}, refreshing")
                await self.auth.refresh()
                return await again()

        elif action == AuthAction.LOGOUT:
            logger.warning(f"{method} {endpoint} failed with {info.type} ({info.code}), logging out")
            await self.auth.logout()
            await self.auth.refresh_if_needed()

        raise AuthError(info.type or "Authentication failed", info)

    async def _authorization(self, method: str, endpoint: str, params: Optional[Dict[str, Any]]) -> str:
        token = await self.config.get_transaction_token()
        if not token:
            token = await self.auth.get_transaction_token()
        if not token:
            raise AuthError(
                "No transaction token available",
                ErrorInfo(
                    url=endpoint,
                    method=method,
                    params=dict(params or {}),
                    type="AuthError",
                    code="no_transaction_token",
                ),
            )
        return token

    async def _reauthenticate(self, info: ErrorInfo) -> None:
        """Ask the host for the user's password and log in with critical privilege."""
        error = AuthError(info.type or "AuthError", info)
        try:
            results = await self.hooks.call_hook(USER_PASSWORD_INPUT, self, error)
        except Exception as e:
            raise AuthError("Re-authentication hook failed", info) from e

        answer = results[0] if results else None
        if not answer:
            raise AuthError("Re-authentication was not completed", info)

        await self.auth.reauthenticate(answer)

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        if "application/json" not in response.headers.get("content-type", ""):
            return {}
        try:
            return response.json()
        except ValueError:
            logger.error(f"Response is not valid JSON: {response.text[:500]}")
            return None

    @staticmethod
    def _error_for(info: ErrorInfo) -> APIError:
        message = info.type or "Unknown error occurred"
        if info.status in (401, 403):
            return AuthError(message, info)
        return BackendError(message, info)

    # LIFECYCLE ----------------------------------------------------------------

    async def close(self) -> None:
        """Close HTTP client (only if this client created it)."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

