"""Store contract shared by every backend implementation."""

from __future__ import annotations

from typing import Protocol

from .account import Account
from .results import CreateAccountResult, PasswordResult, UpdateResult


class AccountStore(Protocol):
    """Asynchronous account persistence with conditional-write semantics.

    Expected failures (duplicate login, wrong password, unknown login) come
    back as result variants. Infrastructure failures are raised.
    """

    async def create_account(self, account: Account) -> CreateAccountResult:
        """Insert ``account`` unless a record for its login already exists."""
        ...

    async def verify_password(self, login: str, password_hash: str) -> PasswordResult:
        """Return the account when ``password_hash`` matches the stored hash.

        An unknown login and a wrong hash produce the same ``PasswordInvalid``.
        """
        ...

    async def change_password(
        self, login: str, password_hash: str, new_password_hash: str
    ) -> PasswordResult:
        """Swap the password hash, gated on the current hash matching."""
        ...

    async def reset_password(self, login: str, new_password_hash: str) -> UpdateResult:
        """Overwrite the password hash of an existing account."""
        ...

    async def update_tags(self, login: str, tags: dict[str, str]) -> UpdateResult:
        """Replace the whole tag map of an existing account."""
        ...
