"""Tests for token store adapters."""
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bizberry_sdk.core.config import Settings, settings
from bizberry_sdk.sdk import BizberrySDK
from bizberry_sdk.services.errors import BizberryError, TokenStoreError
from bizberry_sdk.services.store import (
    MemoryTokenStore,
    RedisTokenStore,
    get_token_store,
)


# ===== MemoryTokenStore =====

@pytest.mark.asyncio
async def test_memory_store_roundtrip():
    store = MemoryTokenStore()

    await store.set("token_user", "U", is_persistent=True)
    await store.set("token_transaction", "T")

    assert await store.get("token_user") == "U"
    assert await store.get("token_transaction") == "T"
    assert store.is_persistent("token_user") is True
    assert store.is_persistent("token_transaction") is False


@pytest.mark.asyncio
async def test_memory_store_delete_is_idempotent():
    store = MemoryTokenStore()
    await store.set("token_user", "U")

    await store.delete("token_user")
    await store.delete("token_user")

    assert await store.get("token_user") is None


@pytest.mark.asyncio
async def test_memory_store_set_none_deletes():
    store = MemoryTokenStore()
    await store.set("token_user", "U")

    await store.set("token_user", None)

    assert "token_user" not in store.values


# ===== RedisTokenStore =====

@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    return client


@pytest.mark.asyncio
async def test_redis_store_persistent_value_has_no_ttl(redis_client):
    store = RedisTokenStore(redis_client, key_prefix="test")

    await store.set("token_user", "U", is_persistent=True)

    redis_client.set.assert_awaited_once_with("test:token_user", "U")
    redis_client.setex.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_store_session_value_expires(redis_client):
    store = RedisTokenStore(redis_client, key_prefix="test", session_ttl=120)

    await store.set("token_transaction", "T")

    redis_client.setex.assert_awaited_once_with("test:token_transaction", 120, "T")


@pytest.mark.asyncio
async def test_redis_store_get_decodes_bytes(redis_client):
    redis_client.get.return_value = b"U"
    store = RedisTokenStore(redis_client, key_prefix="test")

    assert await store.get("token_user") == "U"
    redis_client.get.assert_awaited_once_with("test:token_user")


@pytest.mark.asyncio
async def test_redis_store_get_returns_none_on_redis_error(redis_client):
    redis_client.get.side_effect = RedisConnectionError("down")
    store = RedisTokenStore(redis_client, key_prefix="test")

    assert await store.get("token_user") is None


@pytest.mark.asyncio
async def test_redis_store_delete_and_close(redis_client):
    store = RedisTokenStore(redis_client, key_prefix="test")

    await store.delete("token_user")
    await store.close()

    redis_client.delete.assert_awaited_once_with("test:token_user")
    redis_client.aclose.assert_awaited_once()


def test_redis_store_defaults_from_settings():
    with patch("bizberry_sdk.services.store.redis_token_store.redis.from_url") as from_url:
        store = RedisTokenStore()

    assert from_url.call_args.kwargs["decode_responses"] is True
    assert store.key_prefix == settings.REDIS_KEY_PREFIX


# ===== Factory =====

def test_get_token_store_memory():
    assert isinstance(get_token_store("memory"), MemoryTokenStore)


def test_get_token_store_redis():
    with patch("bizberry_sdk.services.store.redis_token_store.redis.from_url"):
        assert isinstance(get_token_store("REDIS"), RedisTokenStore)


def test_get_token_store_unknown():
    with pytest.raises(ValueError, match="Unknown token store"):
        get_token_store("sqlite")


# ===== Redis failures =====

@pytest.mark.asyncio
@pytest.mark.parametrize("is_persistent,command", [(True, "set"), (False, "setex")])
async def test_redis_store_set_failure_is_typed(redis_client, is_persistent, command):
    getattr(redis_client, command).side_effect = RedisConnectionError("down")
    store = RedisTokenStore(redis_client, key_prefix="test")

    with pytest.raises(TokenStoreError) as exc_info:
        await store.set("token_user", "U", is_persistent=is_persistent)

    assert isinstance(exc_info.value, BizberryError)
    assert isinstance(exc_info.value.__cause__, RedisConnectionError)


@pytest.mark.asyncio
async def test_redis_store_delete_failure_is_typed(redis_client):
    redis_client.delete.side_effect = RedisConnectionError("down")
    store = RedisTokenStore(redis_client, key_prefix="test")

    with pytest.raises(TokenStoreError):
        await store.delete("token_user")


@pytest.mark.asyncio
async def test_logout_during_redis_outage_raises_sdk_error(redis_client, settings):
    redis_client.delete.side_effect = RedisConnectionError("down")
    sdk = BizberrySDK(settings=settings, store=RedisTokenStore(redis_client, key_prefix="test"))

    with pytest.raises(TokenStoreError):
        await sdk.auth.logout()

    await sdk.close()


# ===== Settings injection =====

def test_redis_store_uses_injected_settings():
    custom = Settings(REDIS_URL="redis://other-host:6390/3", REDIS_KEY_PREFIX="custom")

    with patch("bizberry_sdk.services.store.redis_token_store.redis.from_url") as from_url:
        store = RedisTokenStore(settings=custom)

    assert from_url.call_args.args[0] == "redis://other-host:6390/3"
    assert store.key_prefix == "custom"


def test_sdk_builds_redis_store_from_its_settings():
    custom = Settings(
        BIZBERRY_URL="https://api.bizberry.test",
        BIZBERRY_TOKEN_STORE="redis",
        REDIS_URL="redis://other-host:6390/3",
        REDIS_KEY_PREFIX="custom",
    )

    with patch("bizberry_sdk.services.store.redis_token_store.redis.from_url") as from_url:
        sdk = BizberrySDK(settings=custom)

    assert isinstance(sdk.store, RedisTokenStore)
    assert from_url.call_args.args[0] == "redis://other-host:6390/3"
    assert sdk.store.key_prefix == "custom"
