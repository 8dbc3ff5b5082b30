"""Pytest configuration and fixtures."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import jwt
import pytest

from bizberry_sdk.core.config import Settings
from bizberry_sdk.sdk import BizberrySDK
from bizberry_sdk.services.api import APIClient
from bizberry_sdk.services.hooks import HookRegistry
from bizberry_sdk.services.session import SessionConfiguration
from bizberry_sdk.services.store.memory_token_store import MemoryTokenStore

BASE_URL = "https://api.bizberry.test"
TENANT = "tenant-1"

Responder = Callable[[httpx.Request], Any]


def make_token(expires_in: timedelta = timedelta(minutes=10), **claims) -> str:
    """Encode a bizberry-style JWT (signature is never checked by the SDK)."""
    now = datetime.now(timezone.utc)
    payload = {
        "iss": "bizberry",
        "sub": "u1",
        "ten": TENANT,
        "aud": ["bizberry"],
        "rls": ["user"],
        "jti": str(uuid.uuid4()),
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    payload.update(claims)
    return jwt.encode(payload, "test-secret", algorithm="HS256")


def json_response(status: int, body: Any = None, headers: Optional[Dict[str, str]] = None) -> Responder:
    """Responder building a fresh JSON response per request."""
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body if body is not None else {}, headers=headers)
    return respond


def error_response(status: int, error_type: str, code: Optional[str] = None, **extra) -> Responder:
    """Responder returning a backend error envelope."""
    detail = {"type": error_type, "code": code, "message": f"{error_type} {code}"}
    detail.update(extra)
    return json_response(status, {"detail": detail, "event_id": "evt-1"})


def network_error(message: str = "connection refused") -> Responder:
    def respond(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError(message, request=request)
    return respond


class MockBackend:
    """Route table for httpx.MockTransport.

    Each route holds a queue of responders; the last one repeats.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Responder]] = {}
        self.calls: List[httpx.Request] = []

    def add(self, method: str, path: str, *responders: Responder) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(responders)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"detail": {"type": "NotFound", "code": "not_found"}})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        response = responder(request)
        if hasattr(response, "__await__"):
            response = await response
        return response

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [c for c in self.calls if c.method == method.upper() and c.url.path == path]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def settings():
    """SDK settings for testing."""
    return Settings(BIZBERRY_URL=BASE_URL, BIZBERRY_TENANT=TENANT)


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def hooks():
    return HookRegistry()


@pytest.fixture
def session_config(store, settings):
    return SessionConfiguration(store, settings=settings)


@pytest.fixture
def api(session_config, hooks, backend):
    """APIClient talking to the mock backend."""
    return APIClient(session_config, hooks=hooks, http_client=backend.client())


@pytest.fixture
def sdk(settings, store, hooks, backend):
    return BizberrySDK(settings=settings, store=store, hooks=hooks, http_client=backend.client())


@pytest.fixture
def user_token():
    return make_token(expires_in=timedelta(days=30))


@pytest.fixture
def transaction_token():
    return make_token(expires_in=timedelta(minutes=10))


@pytest.fixture
async def logged_in(store, user_token, transaction_token):
    """Store with a valid user and transaction token."""
    await store.set("token_user", user_token, is_persistent=True)
    await store.set("token_transaction", transaction_token)
    return store
