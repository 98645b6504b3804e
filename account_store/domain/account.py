from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class Account:
    """Stored identity: login, opaque password hash and free-form tags."""

    login: str
    password_hash: str = field(repr=False)
    tags: dict[str, str] = field(default_factory=dict)
