"""Access service: users, tenants and countries."""
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

if TYPE_CHECKING:
    from bizberry_sdk.sdk import BizberrySDK

logger = logging.getLogger(__name__)


async def one_time_password(sdk: "BizberrySDK", body: Mapping[str, Any]) -> Any:
    """Request a one time password."""
    return await sdk.api.post("/access/auth/otp", dict(body), is_authorized=False)


async def create_user_check(sdk: "BizberrySDK", body: Mapping[str, Any]) -> Any:
    """Check whether a contact exists and its email is valid."""
    return await sdk.api.post("/access/auth/check", dict(body), is_authorized=False)


async def create_user(sdk: "BizberrySDK", body: Mapping[str, Any]) -> Dict[str, Any]:
    """Create a user and log in as that user.

    Args:
        body: User fields including ``email`` and ``password``; ``language``
            is sent on creation but not used for login
    """
    user = await sdk.api.post("/access/users", dict(body))
    credentials = {key: value for key, value in body.items() if key != "language"}
    await sdk.login(credentials)
    return user


async def get_user(sdk: "BizberrySDK", user_id: str = "self") -> Optional[Dict[str, Any]]:
    """Get a user; without ``user_id`` the logged in user. None when logged out."""
    if not await sdk.config.get_user_token():
        return None
    return await sdk.api.get(f"/access/users/{user_id}")


async def update_user(sdk: "BizberrySDK", user_id: str, body: Mapping[str, Any]) -> Any:
    return await sdk.api.patch(f"/access/users/{user_id}", dict(body))


async def delete_user_token(sdk: "BizberrySDK", user_id: str, token_id: str) -> Any:
    """Revoke a user token server side (cross-domain logout)."""
    return await sdk.api.delete(f"/access/users/{user_id}/tokens/{token_id}")


async def revoke_session(sdk: "BizberrySDK") -> None:
    """Revoke the current user token on the backend, then log out locally."""
    payload = await sdk.auth.get_user_payload()
    if payload and payload.subject and payload.jwt_id:
        await delete_user_token(sdk, payload.subject, payload.jwt_id)
    else:
        logger.debug("No revocable user token stored, logging out locally only")
    await sdk.logout()


async def get_tenant(sdk: "BizberrySDK", tenant_id: str) -> Any:
    return await sdk.api.get(f"/access/tenants/{tenant_id}")


async def get_tenants(sdk: "BizberrySDK", params: Optional[Dict[str, Any]] = None) -> Any:
    """List tenants. Supports ``limit`` and ``offset``."""
    return await sdk.api.get("/access/tenants", params)


async def update_tenant(sdk: "BizberrySDK", tenant_id: str, body: Mapping[str, Any]) -> Any:
    return await sdk.api.patch(f"/access/tenants/{tenant_id}", dict(body))


async def create_country(sdk: "BizberrySDK", tenant_id: str, body: Mapping[str, Any]) -> Any:
    return await sdk.api.post(f"/access/tenants/{tenant_id}/countries", dict(body))


async def get_countries(sdk: "BizberrySDK", tenant_id: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """List a tenant's countries. Supports ``limit`` and ``offset``."""
    return await sdk.api.get(f"/access/tenants/{tenant_id}/countries", params)
