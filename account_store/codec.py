"""Mapping between ``Account`` and the Redis hash that stores it."""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Json, ValidationError

from .config import PASSWORD_HASH_ATTRIBUTE, TAGS_ATTRIBUTE
from .domain.account import Account
from .errors import RecordDecodeError


class StoredAttributes(BaseModel):
    """Validated view of a stored record before it becomes an ``Account``."""

    model_config = ConfigDict(strict=False, frozen=True)

    login: str
    password_hash: str
    tags: Json[dict[str, str]]


def _text(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RecordCodec:
    """Lossless encoder/decoder for account attribute maps."""

    def __init__(self, pk_attribute: str = "Login") -> None:
        """Remember the attribute name that carries the login."""
        self._pk_attribute = pk_attribute

    @property
    def pk_attribute(self) -> str:
        return self._pk_attribute

    def encode_tags(self, tags: Mapping[str, str]) -> str:
        """Render the tag map as compact JSON for the ``Tags`` attribute."""
        return json.dumps(dict(tags), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def encode(self, account: Account) -> dict[str, str]:
        """Return the attribute map written for ``account``."""
        return {
            self._pk_attribute: account.login,
            PASSWORD_HASH_ATTRIBUTE: account.password_hash,
            TAGS_ATTRIBUTE: self.encode_tags(account.tags),
        }

    def decode(self, attributes: Mapping[Any, Any]) -> Account:
        """Build an ``Account`` from a stored attribute map.

        Keys and values may be ``str`` or ``bytes`` depending on whether the
        client was created with ``decode_responses``. Raises
        :class:`RecordDecodeError` when required attributes are missing or
        malformed.
        """
        try:
            normalised = {_text(key): _text(value) for key, value in attributes.items()}
            stored = StoredAttributes.model_validate(
                {
                    "login": normalised.get(self._pk_attribute),
                    "password_hash": normalised.get(PASSWORD_HASH_ATTRIBUTE),
                    "tags": normalised.get(TAGS_ATTRIBUTE),
                }
            )
        except (UnicodeDecodeError, ValidationError) as exc:
            raise RecordDecodeError(f"stored account record is malformed: {exc}") from exc
        return Account(login=stored.login, password_hash=stored.password_hash, tags=dict(stored.tags))

    def decode_pairs(self, flat: Sequence[Any]) -> Account:
        """Decode the flat ``[field, value, ...]`` reply of ``HGETALL``."""
        if len(flat) % 2:
            raise RecordDecodeError("attribute reply has an odd number of elements")
        return self.decode(dict(zip(flat[0::2], flat[1::2])))
