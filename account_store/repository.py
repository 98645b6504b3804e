"""Redis-backed account store built on server-side conditional scripts."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Final, Mapping

from redis.asyncio import Redis
from redis.exceptions import ResponseError

from .codec import RecordCodec
from .config import PASSWORD_HASH_ATTRIBUTE, TAGS_ATTRIBUTE, AccountStoreConfig
from .domain.account import Account
from .domain.results import (
    AccountNotFound,
    CreateAccountResult,
    Created,
    LoginAlreadyExists,
    PasswordInvalid,
    PasswordResult,
    Updated,
    UpdateResult,
    Verified,
)
from .errors import OperationTimeoutError

logger = logging.getLogger(__name__)

CONDITION_FAILED: Final[str] = "CONDITIONAL_CHECK_FAILED"

_REJECTED: Final = object()


def is_condition_failure(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` (or an exception it wraps) is a rejected precondition.

    Only explicit wrapping through ``__cause__`` is followed.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ResponseError) and CONDITION_FAILED in str(current):
            return True
        current = current.__cause__
    return False


class RedisAccountStore:
    """Account persistence where every operation is one atomic Lua script call.

    Records live in Redis hashes keyed ``{<table_name>}:<login>``. Preconditions
    are evaluated inside the script; a violated one is reported through an
    error reply starting with ``CONDITIONAL_CHECK_FAILED``.
    """

    # KEYS[1] record key; ARGV[1] pk attribute; ARGV[2..] attribute/value pairs.
    _INSERT_SCRIPT: Final[str] = """
    if redis.call('HEXISTS', KEYS[1], ARGV[1]) == 1 then
        return redis.error_reply('CONDITIONAL_CHECK_FAILED')
    end
    redis.call('DEL', KEYS[1])
    for i = 2, #ARGV, 2 do
        redis.call('HSET', KEYS[1], ARGV[i], ARGV[i + 1])
    end
    return 1
    """

    # ARGV[1] pk attribute; ARGV[2] number of equality checks; then the check
    # pairs; then the attribute/value pairs to set.
    _UPDATE_SCRIPT: Final[str] = """
    if redis.call('HEXISTS', KEYS[1], ARGV[1]) == 0 then
        return redis.error_reply('CONDITIONAL_CHECK_FAILED')
    end
    local i = 3
    for _ = 1, tonumber(ARGV[2]) do
        if redis.call('HGET', KEYS[1], ARGV[i]) ~= ARGV[i + 1] then
            return redis.error_reply('CONDITIONAL_CHECK_FAILED')
        end
        i = i + 2
    end
    while i <= #ARGV do
        redis.call('HSET', KEYS[1], ARGV[i], ARGV[i + 1])
        i = i + 2
    end
    return redis.call('HGETALL', KEYS[1])
    """

    # ARGV[1] filter attribute; ARGV[2] expected value. Returns matching records.
    _QUERY_SCRIPT: Final[str] = """
    local matches = {}
    if redis.call('HGET', KEYS[1], ARGV[1]) == ARGV[2] then
        matches[1] = redis.call('HGETALL', KEYS[1])
    end
    return matches
    """

    def __init__(self, client: Redis, config: AccountStoreConfig | None = None) -> None:
        """Register the conditional scripts against ``client``."""
        self._client = client
        self._config = config or AccountStoreConfig()
        self._codec = RecordCodec(self._config.pk_attribute)
        self._timeout = self._config.effective_timeout_seconds
        self._insert = client.register_script(self._INSERT_SCRIPT)
        self._update = client.register_script(self._UPDATE_SCRIPT)
        self._query = client.register_script(self._QUERY_SCRIPT)

    def _key(self, login: str) -> str:
        return f"{{{self._config.table_name}}}:{login}"

    async def _bounded(self, call: Awaitable[Any]) -> Any:
        """Await ``call`` within the configured timeout, cancelling it on expiry."""
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("account store call timed out after %.3fs", self._timeout)
            raise OperationTimeoutError(
                f"account store call exceeded {self._timeout:.3f}s"
            ) from exc

    async def _conditional(self, script: Any, login: str, args: list[str]) -> Any:
        """Run a conditional script, returning ``_REJECTED`` when its precondition fails."""
        try:
            return await self._bounded(script(keys=[self._key(login)], args=args))
        except Exception as exc:
            if not is_condition_failure(exc):
                raise
            logger.debug("conditional write rejected for login %r", login)
            return _REJECTED

    def _update_args(self, conditions: Mapping[str, str], changes: Mapping[str, str]) -> list[str]:
        args = [self._codec.pk_attribute, str(len(conditions))]
        for pair in (*conditions.items(), *changes.items()):
            args.extend(pair)
        return args

    async def create_account(self, account: Account) -> CreateAccountResult:
        """Insert ``account`` if its login is free."""
        args = [self._codec.pk_attribute]
        for pair in self._codec.encode(account).items():
            args.extend(pair)
        reply = await self._conditional(self._insert, account.login, args)
        if reply is _REJECTED:
            return LoginAlreadyExists()
        return Created(account)

    async def verify_password(self, login: str, password_hash: str) -> PasswordResult:
        """Query the record filtered on the password hash; no match is ``PasswordInvalid``."""
        rows = await self._bounded(
            self._query(keys=[self._key(login)], args=[PASSWORD_HASH_ATTRIBUTE, password_hash])
        )
        if not rows:
            return PasswordInvalid()
        return Verified(self._codec.decode_pairs(rows[0]))

    async def change_password(
        self, login: str, password_hash: str, new_password_hash: str
    ) -> PasswordResult:
        """Replace the hash when the record exists and ``password_hash`` matches."""
        reply = await self._conditional(
            self._update,
            login,
            self._update_args(
                {PASSWORD_HASH_ATTRIBUTE: password_hash},
                {PASSWORD_HASH_ATTRIBUTE: new_password_hash},
            ),
        )
        if reply is _REJECTED:
            return PasswordInvalid()
        return Verified(self._codec.decode_pairs(reply))

    async def reset_password(self, login: str, new_password_hash: str) -> UpdateResult:
        """Replace the hash of an existing record without checking the old one."""
        reply = await self._conditional(
            self._update,
            login,
            self._update_args({}, {PASSWORD_HASH_ATTRIBUTE: new_password_hash}),
        )
        if reply is _REJECTED:
            return AccountNotFound()
        return Updated(self._codec.decode_pairs(reply))

    async def update_tags(self, login: str, tags: dict[str, str]) -> UpdateResult:
        """Overwrite the tag map of an existing record."""
        reply = await self._conditional(
            self._update,
            login,
            self._update_args({}, {TAGS_ATTRIBUTE: self._codec.encode_tags(tags)}),
        )
        if reply is _REJECTED:
            return AccountNotFound()
        return Updated(self._codec.decode_pairs(reply))
