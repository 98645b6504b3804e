"""Domain types for the account store."""

from .account import Account
from .contracts import AccountStore
from .results import (
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

__all__ = [
    "Account",
    "AccountNotFound",
    "AccountStore",
    "CreateAccountResult",
    "Created",
    "LoginAlreadyExists",
    "PasswordInvalid",
    "PasswordResult",
    "Updated",
    "UpdateResult",
    "Verified",
]
