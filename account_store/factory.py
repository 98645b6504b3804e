"""Backend selection for the account store."""

from __future__ import annotations

import logging

from redis.asyncio import from_url

from .config import Settings, get_settings
from .domain.contracts import AccountStore
from .memory import InMemoryAccountStore
from .repository import RedisAccountStore

logger = logging.getLogger(__name__)


def build_account_store(settings: Settings | None = None) -> AccountStore:
    """Instantiate the configured account store backend."""
    settings = settings or get_settings()
    config = settings.store_config()

    if settings.store_backend == "memory":
        logger.info("account store using in-memory backend")
        return InMemoryAccountStore()

    if settings.store_backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL must be set for the redis account store backend")
        client = from_url(settings.redis_url)
        logger.info(
            "account store configured for redis backend (table=%s)",
            config.table_name,
        )
        return RedisAccountStore(client, config)

    raise ValueError(f"unknown account store backend {settings.store_backend!r}")
