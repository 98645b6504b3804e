"""Closed result variants returned by every account store operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .account import Account


@dataclass(frozen=True, slots=True)
class Created:
    """The account was inserted; carries the input record."""

    account: Account


@dataclass(frozen=True, slots=True)
class LoginAlreadyExists:
    """A record for the login already exists."""


@dataclass(frozen=True, slots=True)
class Verified:
    """The password hash matched; carries the stored record."""

    account: Account


@dataclass(frozen=True, slots=True)
class PasswordInvalid:
    """Unknown login or mismatching password hash."""


@dataclass(frozen=True, slots=True)
class Updated:
    """The record was updated; carries its new state."""

    account: Account


@dataclass(frozen=True, slots=True)
class AccountNotFound:
    """No record exists for the login."""


CreateAccountResult = Union[Created, LoginAlreadyExists]
PasswordResult = Union[Verified, PasswordInvalid]
UpdateResult = Union[Updated, AccountNotFound]
