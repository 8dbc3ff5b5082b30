"""Session-level helpers."""
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from bizberry_sdk.sdk import BizberrySDK


def info(sdk: "BizberrySDK") -> Dict[str, Any]:
    """Get the (non-secret) configuration of the SDK."""
    return sdk.info()


async def geo_country(sdk: "BizberrySDK") -> Any:
    """Get the country the request IP belongs to."""
    return await sdk.api.get("/geo/country")
