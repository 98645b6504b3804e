"""Redis-specific behaviour of the conditional write engine."""

from __future__ import annotations

import asyncio

import pytest
from redis.exceptions import ConnectionError, ResponseError

from account_store.config import AccountStoreConfig
from account_store.domain.account import Account
from account_store.domain.results import (
    AccountNotFound,
    Created,
    LoginAlreadyExists,
    PasswordInvalid,
    Verified,
)
from account_store.errors import OperationTimeoutError, RecordDecodeError
from account_store.repository import CONDITION_FAILED, RedisAccountStore, is_condition_failure


async def _stall(*, keys, args):
    await asyncio.sleep(5)


@pytest.mark.asyncio
async def test_create_account_writes_hash_attributes(redis_store, redis_client, account):
    await redis_store.create_account(account)

    stored = await redis_client.hgetall("{test}:mgjam")

    assert stored == {
        b"Login": b"mgjam",
        b"PasswordHash": b"ph",
        b"Tags": b'{"tag":"value","tag2":"value2"}',
    }


@pytest.mark.asyncio
async def test_custom_primary_key_attribute(redis_client, account):
    store = RedisAccountStore(redis_client, AccountStoreConfig(table_name="users", pk_attribute="UserName"))

    await store.create_account(account)

    assert await redis_client.hget("{users}:mgjam", "UserName") == b"mgjam"
    assert await store.create_account(account) == LoginAlreadyExists()
    assert await store.verify_password("mgjam", "ph") == Verified(account)


@pytest.mark.asyncio
async def test_failed_verify_leaves_record_untouched(redis_store, redis_client, account):
    await redis_store.create_account(account)
    before = await redis_client.hgetall("{test}:mgjam")

    assert await redis_store.verify_password("mgjam", "wrong") == PasswordInvalid()
    assert await redis_client.hgetall("{test}:mgjam") == before
    assert await redis_client.exists("{test}:nonexistent") == 0


@pytest.mark.asyncio
async def test_failed_updates_do_not_create_records(redis_store, redis_client):
    assert await redis_store.change_password("ghost", "ph", "new") == PasswordInvalid()
    assert await redis_store.reset_password("ghost", "new") == AccountNotFound()
    assert await redis_store.update_tags("ghost", {"a": "1"}) == AccountNotFound()
    assert await redis_client.exists("{test}:ghost") == 0


@pytest.mark.asyncio
async def test_non_ascii_tags_round_trip(redis_store):
    account = Account(login="zoë", password_hash="h", tags={"città": "Zürich", "emoji": "✓"})
    await redis_store.create_account(account)

    assert await redis_store.verify_password("zoë", "h") == Verified(account)


@pytest.mark.asyncio
async def test_timeout_raises_operation_timeout(redis_client, account):
    store = RedisAccountStore(redis_client, AccountStoreConfig(table_name="test", timeout_ms=20))
    store._insert = _stall

    with pytest.raises(OperationTimeoutError) as excinfo:
        await store.create_account(account)

    assert isinstance(excinfo.value, TimeoutError)


@pytest.mark.asyncio
async def test_timeout_applies_to_queries(redis_client):
    store = RedisAccountStore(redis_client, AccountStoreConfig(table_name="test", timeout_ms=20))
    store._query = _stall

    with pytest.raises(OperationTimeoutError):
        await store.verify_password("mgjam", "ph")


@pytest.mark.asyncio
async def test_backend_errors_propagate(redis_store, account):
    async def refused(*, keys, args):
        raise ConnectionError("connection refused")

    redis_store._update = refused

    with pytest.raises(ConnectionError):
        await redis_store.reset_password(account.login, "new")


@pytest.mark.asyncio
async def test_unrelated_response_errors_propagate(redis_store, redis_client, account):
    await redis_client.set("{test}:mgjam", "not-a-hash")

    with pytest.raises(ResponseError) as excinfo:
        await redis_store.create_account(account)

    assert CONDITION_FAILED not in str(excinfo.value)


@pytest.mark.asyncio
async def test_wrapped_condition_failure_maps_to_domain_result(redis_store):
    async def wrapped(*, keys, args):
        try:
            raise ResponseError(CONDITION_FAILED)
        except ResponseError as exc:
            raise RuntimeError("transport failure") from exc

    redis_store._update = wrapped

    assert await redis_store.reset_password("mgjam", "new") == AccountNotFound()


@pytest.mark.asyncio
async def test_decode_failure_is_fatal(redis_store, redis_client):
    await redis_client.hset("{test}:broken", mapping={"Login": "broken", "PasswordHash": "ph"})

    with pytest.raises(RecordDecodeError):
        await redis_store.verify_password("broken", "ph")


@pytest.mark.asyncio
async def test_first_matching_record_wins(redis_store, account):
    other = [b"Login", b"other", b"PasswordHash", b"ph", b"Tags", b"{}"]
    first = [b"Login", b"mgjam", b"PasswordHash", b"ph", b"Tags", b'{"tag":"value","tag2":"value2"}']

    async def duplicated(*, keys, args):
        return [first, other]

    redis_store._query = duplicated

    assert await redis_store.verify_password("mgjam", "ph") == Verified(account)


def test_is_condition_failure_matches_marker():
    assert is_condition_failure(ResponseError(CONDITION_FAILED))
    assert not is_condition_failure(ResponseError("WRONGTYPE Operation against a key"))
    assert not is_condition_failure(ValueError(CONDITION_FAILED))


def test_is_condition_failure_ignores_implicit_context():
    try:
        try:
            raise ResponseError(CONDITION_FAILED)
        except ResponseError:
            raise ConnectionError("lost connection while handling")
    except ConnectionError as exc:
        assert not is_condition_failure(exc)


@pytest.mark.asyncio
async def test_invalid_utf8_record_is_a_decode_failure(redis_store, redis_client):
    await redis_client.hset("{test}:bad", mapping={"Login": b"\xff", "PasswordHash": "ph", "Tags": "{}"})

    with pytest.raises(RecordDecodeError):
        await redis_store.verify_password("bad", "ph")


class CountingScript:
    """Wraps a registered script and counts invocations."""

    def __init__(self, script) -> None:
        self._script = script
        self.calls = 0

    def __call__(self, *, keys, args):
        self.calls += 1
        return self._script(keys=keys, args=args)


@pytest.mark.asyncio
async def test_each_operation_issues_exactly_one_backend_call(redis_store, account):
    insert = redis_store._insert = CountingScript(redis_store._insert)
    update = redis_store._update = CountingScript(redis_store._update)
    query = redis_store._query = CountingScript(redis_store._query)

    await redis_store.create_account(account)
    await redis_store.create_account(account)
    assert (insert.calls, update.calls, query.calls) == (2, 0, 0)

    await redis_store.verify_password(account.login, "wrong")
    await redis_store.verify_password(account.login, account.password_hash)
    assert (insert.calls, update.calls, query.calls) == (2, 0, 2)

    await redis_store.change_password(account.login, "wrong", "new")
    await redis_store.change_password(account.login, account.password_hash, "new")
    await redis_store.reset_password("ghost", "new")
    await redis_store.reset_password(account.login, "newer")
    await redis_store.update_tags("ghost", {})
    await redis_store.update_tags(account.login, {"a": "1"})
    assert (insert.calls, update.calls, query.calls) == (2, 6, 2)


@pytest.mark.asyncio
async def test_timeout_cancels_in_flight_call(redis_client):
    observed = {}

    async def stall(*, keys, args):
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            observed["cancelled"] = True
            raise

    store = RedisAccountStore(redis_client, AccountStoreConfig(table_name="test", timeout_ms=20))
    store._update = stall

    with pytest.raises(OperationTimeoutError):
        await store.reset_password("mgjam", "new")

    assert observed == {"cancelled": True}


@pytest.mark.asyncio
async def test_tables_sharing_a_prefix_do_not_overlap(redis_client):
    short = RedisAccountStore(redis_client, AccountStoreConfig(table_name="t"))
    longer = RedisAccountStore(redis_client, AccountStoreConfig(table_name="t:x"))

    first = Account(login="x:y", password_hash="one")
    second = Account(login="y", password_hash="two")

    assert await short.create_account(first) == Created(first)
    assert await longer.create_account(second) == Created(second)
    assert await short.verify_password("x:y", "one") == Verified(first)
    assert await longer.verify_password("y", "two") == Verified(second)
    assert await redis_client.exists("{t}:x:y", "{t:x}:y") == 2
