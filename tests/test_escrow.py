import base58
import pytest

from yield_lottery.escrow import SigningContext, address_of, create_escrow, sign_as
from yield_lottery.ledger import Ledger


def test_addresses_are_deterministic_base58_keys():
    first, _ = create_escrow("seed-1")
    again, _ = create_escrow("seed-1")
    other, _ = create_escrow("seed-2")

    assert address_of(first) == address_of(again)
    assert address_of(first) != address_of(other)
    assert len(base58.b58decode(address_of(first))) == 32


def test_capability_signs_for_its_own_address():
    identity, cap = create_escrow("pot")

    ctx = sign_as(cap)

    assert isinstance(ctx, SigningContext)
    assert ctx.address == identity.address
    assert "pot" not in repr(cap)


def test_ledger_requires_signing_context():
    identity, cap = create_escrow("pot")
    ledger = Ledger({identity.address: 10})

    with pytest.raises(TypeError):
        ledger.transfer(identity.address, "elsewhere", 1)

    ledger.transfer(sign_as(cap), "elsewhere", 4)
    assert ledger.balance_of(identity.address) == 6
    assert ledger.balance_of("elsewhere") == 4


def test_signing_context_cannot_be_forged():
    identity, _ = create_escrow("pot")
    ledger = Ledger({identity.address: 10})

    with pytest.raises(TypeError):
        SigningContext(identity.address)
    with pytest.raises(TypeError):
        SigningContext(identity.address, object())
    assert ledger.balance_of(identity.address) == 10
