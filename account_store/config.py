from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os

DEFAULT_TIMEOUT_MS = 10_000

PASSWORD_HASH_ATTRIBUTE = "PasswordHash"
TAGS_ATTRIBUTE = "Tags"


def _optional_int(value: str | None) -> int | None:
    """Parse an optional integer environment value, treating blanks as unset."""
    if value is None or not value.strip():
        return None
    return int(value)


@dataclass(frozen=True)
class AccountStoreConfig:
    """Where and how a backend stores account records."""

    table_name: str = "accounts"
    pk_attribute: str = "Login"
    timeout_ms: int | None = None

    def __post_init__(self) -> None:
        if not self.table_name:
            raise ValueError("table_name must not be empty")
        if "{" in self.table_name or "}" in self.table_name:
            raise ValueError("table_name must not contain braces")
        if not self.pk_attribute:
            raise ValueError("pk_attribute must not be empty")
        if self.pk_attribute in (PASSWORD_HASH_ATTRIBUTE, TAGS_ATTRIBUTE):
            raise ValueError(f"pk_attribute collides with reserved attribute {self.pk_attribute!r}")
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

    @property
    def effective_timeout_seconds(self) -> float:
        """Timeout bound in seconds, falling back to the 10s default."""
        timeout_ms = DEFAULT_TIMEOUT_MS if self.timeout_ms is None else self.timeout_ms
        return timeout_ms / 1000


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values read from the process environment."""

    app_name: str = "account-store"
    version: str = "0.1.0"
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", ""))
    store_backend: str = field(
        default_factory=lambda: os.getenv("ACCOUNT_STORE_BACKEND", "redis").lower()
    )
    table_name: str = field(default_factory=lambda: os.getenv("ACCOUNT_TABLE_NAME", "accounts"))
    pk_attribute: str = field(default_factory=lambda: os.getenv("ACCOUNT_PK_ATTRIBUTE", "Login"))
    timeout_ms: int | None = field(
        default_factory=lambda: _optional_int(os.getenv("ACCOUNT_TIMEOUT_MS"))
    )

    def store_config(self) -> AccountStoreConfig:
        """Project the storage-related settings into an ``AccountStoreConfig``."""
        return AccountStoreConfig(
            table_name=self.table_name,
            pk_attribute=self.pk_attribute,
            timeout_ms=self.timeout_ms,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
