"""Decoding of bizberry JWT payloads.

The SDK never verifies token signatures (it has no key); it only reads the
claims to decide whether a token is still usable.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import jwt

logger = logging.getLogger(__name__)


class InvalidTokenError(ValueError):
    """Token is missing or its payload cannot be decoded."""
    pass


@dataclass
class TokenPayload:
    """Claims carried by user and transaction tokens."""
    subject: Optional[str] = None
    expiry: Optional[datetime] = None
    tenant: Optional[str] = None
    audience: List[str] = field(default_factory=list)
    roles: List[str] = field(default_factory=list)
    jwt_id: Optional[str] = None
    critical: bool = False
    issuer: Optional[str] = None
    issued_at: Optional[datetime] = None
    not_before: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def get_payload(token: Optional[str]) -> TokenPayload:
    """Decode a token's claims without verifying the signature.

    Raises:
        InvalidTokenError: If the token is empty or not a decodable JWT
    """
    if not token or not isinstance(token, str):
        raise InvalidTokenError("Invalid token format")

    # Tokens may arrive with a scheme prefix when copied from a header
    if token.lower().startswith("bearer "):
        token = token[7:]

    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise InvalidTokenError(f"Invalid token data: {e}") from e

    try:
        return TokenPayload(
            subject=claims.get("sub"),
            expiry=_timestamp(claims.get("exp")),
            tenant=claims.get("ten"),
            audience=_as_list(claims.get("aud")),
            roles=_as_list(claims.get("rls")),
            jwt_id=claims.get("jti"),
            critical=bool(claims.get("crt", False)),
            issuer=claims.get("iss"),
            issued_at=_timestamp(claims.get("iat")),
            not_before=_timestamp(claims.get("nbf")),
            raw=claims,
        )
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidTokenError(f"Invalid token claims: {e}") from e
