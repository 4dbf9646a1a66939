"""
Escrow identities and the signing capability that operates them.

An identity is a public address derived from a seed. The matching capability
is the only object that can produce a `SigningContext` for that address, and
every debit on the ledger requires one.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Tuple

import base58

from .project_constants import USER_SEED_PREFIX


@dataclass(frozen=True)
class EscrowIdentity:
    seed: str
    address: str


_SIGNING_TOKEN = object()


@dataclass(frozen=True)
class SigningContext:
    """Short-lived authority to move funds out of `address`.

    Only `Capability.sign()` can build one.
    """

    address: str
    _token: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self._token is not _SIGNING_TOKEN:
            raise TypeError("SigningContext must come from Capability.sign()")


@dataclass(frozen=True)
class Capability:
    identity: EscrowIdentity = field(repr=False)

    def sign(self) -> SigningContext:
        return SigningContext(self.identity.address, _SIGNING_TOKEN)


def derive_address(seed: str) -> str:
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return base58.b58encode(digest).decode("ascii")


def create_escrow(seed: str) -> Tuple[EscrowIdentity, Capability]:
    identity = EscrowIdentity(seed=seed, address=derive_address(seed))
    return identity, Capability(identity)


def address_of(identity: EscrowIdentity) -> str:
    return identity.address


def sign_as(capability: Capability) -> SigningContext:
    return capability.sign()


def user_account(name: str) -> Tuple[EscrowIdentity, Capability]:
    """Account for a named participant, as used by the command line."""
    return create_escrow(USER_SEED_PREFIX + name)
