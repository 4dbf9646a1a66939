import pytest

from yield_lottery.escrow import user_account
from yield_lottery.randomness import FixedRandomness
from yield_lottery.state import World


class Accounts:
    """Named test accounts on a world's ledger."""

    def __init__(self, world):
        self.world = world

    def address(self, name):
        identity, _ = user_account(name)
        return identity.address

    def signer(self, name):
        _, cap = user_account(name)
        return cap.sign()

    def fund(self, name, amount):
        self.world.ledger.mint(self.address(name), amount)
        return self.signer(name)

    def balance(self, name):
        return self.world.ledger.balance_of(self.address(name))


@pytest.fixture
def world():
    return World.new("admin", FixedRandomness([]))


@pytest.fixture
def accounts(world):
    return Accounts(world)


@pytest.fixture
def registry(world):
    return world.registry


@pytest.fixture
def force_draws(world):
    def force(*values):
        world.use_randomness(FixedRandomness(values))

    return force
