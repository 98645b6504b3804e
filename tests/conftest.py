from __future__ import annotations

import fakeredis
import pytest

from account_store.config import AccountStoreConfig
from account_store.domain.account import Account
from account_store.memory import InMemoryAccountStore
from account_store.repository import RedisAccountStore


@pytest.fixture()
def redis_client() -> fakeredis.FakeAsyncRedis:
    """Isolated async fake Redis capable of running Lua scripts."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture()
def store_config() -> AccountStoreConfig:
    return AccountStoreConfig(table_name="test", pk_attribute="Login")


@pytest.fixture()
def redis_store(redis_client, store_config) -> RedisAccountStore:
    return RedisAccountStore(redis_client, store_config)


@pytest.fixture(params=["redis", "memory"])
def store(request, redis_client, store_config):
    """Every backend that must honour the account store contract."""
    if request.param == "memory":
        return InMemoryAccountStore()
    return RedisAccountStore(redis_client, store_config)


@pytest.fixture()
def account() -> Account:
    return Account(login="mgjam", password_hash="ph", tags={"tag": "value", "tag2": "value2"})
