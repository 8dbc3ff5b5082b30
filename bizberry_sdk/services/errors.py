"""Error types raised by the SDK.

Every failure that reaches a caller is a ``BizberryError``. Failures of an
API call are ``APIError`` instances carrying an ``ErrorInfo`` record, so
callers can branch on ``status``/``type``/``code`` no matter whether the
problem came from the network or from the backend's error envelope.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Discriminator for ``APIError``."""
    AUTH = "auth"
    TRANSPORT = "transport"
    BACKEND = "backend"


class BizberryError(Exception):
    """Base exception for SDK errors."""
    pass


class ConfigurationError(BizberryError):
    """SDK is missing configuration it needs (e.g. the backend URL)."""
    pass


class TokenStoreError(BizberryError):
    """Token store could not write or delete a token."""
    pass


@dataclass
class ErrorInfo:
    """Normalized description of a failed call."""
    url: str = ""
    method: str = ""
    params: Dict[str, Any] = field(default_factory=dict)
    status: Optional[int] = None
    code: Optional[str] = None
    type: Optional[str] = None
    message: Optional[str] = None
    event_id: Optional[str] = None
    detail: Any = None
    details: Optional[List[Dict[str, Any]]] = None
    loc: Any = None

    @classmethod
    def from_envelope(
        cls,
        envelope: Optional[Dict[str, Any]],
        url: str = "",
        method: str = "",
        params: Optional[Dict[str, Any]] = None,
        status: Optional[int] = None,
    ) -> "ErrorInfo":
        """Build from the backend error envelope.

        ``{"detail": {...} | [{...}, ...], "event_id": "..."}``. A one-element
        detail list is treated like a scalar detail; longer lists are kept
        whole in ``details``.
        """
        envelope = envelope if isinstance(envelope, dict) else {}
        raw_detail = envelope.get("detail")
        details = None
        if isinstance(raw_detail, list):
            if len(raw_detail) > 1:
                details = raw_detail
            detail = raw_detail[0] if raw_detail else None
        else:
            detail = raw_detail

        if not isinstance(detail, dict):
            # plain-string details, e.g. {"detail": "Not Found"}
            detail = {"message": detail} if detail else {}

        code = detail.get("code")
        return cls(
            url=url,
            method=method.upper(),
            params=dict(params or {}),
            status=status,
            code=str(code) if code is not None else None,
            type=detail.get("type"),
            message=detail.get("message") or detail.get("msg"),
            event_id=envelope.get("event_id"),
            detail=detail.get("detail"),
            details=details,
            loc=detail.get("loc"),
        )


class APIError(BizberryError):
    """A failed API call."""

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: Optional[str] = None, info: Optional[ErrorInfo] = None):
        self.info = info or ErrorInfo()
        self.message = message or self.info.type or "Unknown error occurred"
        super().__init__(self.message)

    @property
    def url(self) -> str:
        return self.info.url

    @property
    def method(self) -> str:
        return self.info.method

    @property
    def params(self) -> Dict[str, Any]:
        return self.info.params

    @property
    def status(self) -> Optional[int]:
        return self.info.status

    @property
    def code(self) -> str:
        return self.info.code if self.info.code is not None else "-1"

    @property
    def type(self) -> Optional[str]:
        return self.info.type

    @property
    def msg(self) -> Optional[str]:
        return self.info.message

    @property
    def event_id(self) -> Optional[str]:
        return self.info.event_id

    @property
    def detail(self) -> Any:
        return self.info.detail

    @property
    def details(self) -> Optional[List[Dict[str, Any]]]:
        return self.info.details

    @property
    def loc(self) -> Any:
        return self.info.loc

    def __str__(self) -> str:
        params = json.dumps(self.params, default=str, sort_keys=True)
        return (
            f"bizberry API call failed: {self.method} {self.url} {params} - "
            f"{self.status} {self.message} (code {self.code})"
        )


class AuthError(APIError):
    """Authentication failed and could not be recovered."""
    kind = ErrorKind.AUTH


class TransportError(APIError):
    """No response: network failure, timeout, refused connection."""
    kind = ErrorKind.TRANSPORT


class BackendError(APIError):
    """Backend answered with an error envelope the SDK does not handle."""
    kind = ErrorKind.BACKEND
