"""Account records with conditional-write semantics over Redis."""

from .codec import RecordCodec
from .config import AccountStoreConfig, Settings, get_settings
from .domain import (
    Account,
    AccountNotFound,
    AccountStore,
    CreateAccountResult,
    Created,
    LoginAlreadyExists,
    PasswordInvalid,
    PasswordResult,
    Updated,
    UpdateResult,
    Verified,
)
from .errors import AccountStoreError, OperationTimeoutError, RecordDecodeError
from .factory import build_account_store
from .memory import InMemoryAccountStore
from .repository import RedisAccountStore

__all__ = [
    "Account",
    "AccountNotFound",
    "AccountStore",
    "AccountStoreConfig",
    "AccountStoreError",
    "CreateAccountResult",
    "Created",
    "InMemoryAccountStore",
    "LoginAlreadyExists",
    "OperationTimeoutError",
    "PasswordInvalid",
    "PasswordResult",
    "RecordCodec",
    "RecordDecodeError",
    "RedisAccountStore",
    "Settings",
    "Updated",
    "UpdateResult",
    "Verified",
    "build_account_store",
    "get_settings",
]
