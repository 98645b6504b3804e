"""In-process account store implementation."""

from __future__ import annotations

import logging
from dataclasses import replace
from threading import Lock

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

logger = logging.getLogger(__name__)


def _copy(account: Account) -> Account:
    return replace(account, tags=dict(account.tags))


class InMemoryAccountStore:
    """Thread-safe dict-backed store with the same conditional semantics as Redis."""

    def __init__(self) -> None:
        """Initialise empty per-login storage."""
        self._accounts: dict[str, Account] = {}
        self._lock = Lock()

    async def create_account(self, account: Account) -> CreateAccountResult:
        """Insert a copy of ``account`` unless its login is taken."""
        with self._lock:
            if account.login in self._accounts:
                logger.debug("conditional write rejected for login %r", account.login)
                return LoginAlreadyExists()
            self._accounts[account.login] = _copy(account)
        return Created(account)

    async def verify_password(self, login: str, password_hash: str) -> PasswordResult:
        """Return a copy of the record when ``password_hash`` matches."""
        with self._lock:
            stored = self._accounts.get(login)
            if stored is None or stored.password_hash != password_hash:
                return PasswordInvalid()
            return Verified(_copy(stored))

    async def change_password(
        self, login: str, password_hash: str, new_password_hash: str
    ) -> PasswordResult:
        """Swap the hash when the record exists and the current hash matches."""
        with self._lock:
            stored = self._accounts.get(login)
            if stored is None or stored.password_hash != password_hash:
                logger.debug("conditional write rejected for login %r", login)
                return PasswordInvalid()
            stored.password_hash = new_password_hash
            return Verified(_copy(stored))

    async def reset_password(self, login: str, new_password_hash: str) -> UpdateResult:
        """Overwrite the hash of an existing record."""
        with self._lock:
            stored = self._accounts.get(login)
            if stored is None:
                logger.debug("conditional write rejected for login %r", login)
                return AccountNotFound()
            stored.password_hash = new_password_hash
            return Updated(_copy(stored))

    async def update_tags(self, login: str, tags: dict[str, str]) -> UpdateResult:
        """Replace the tag map of an existing record."""
        with self._lock:
            stored = self._accounts.get(login)
            if stored is None:
                logger.debug("conditional write rejected for login %r", login)
                return AccountNotFound()
            stored.tags = dict(tags)
            return Updated(_copy(stored))
