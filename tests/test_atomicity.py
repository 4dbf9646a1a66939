import threading

import pytest

from yield_lottery.atomic import atomic, defer, record_undo


class FailingDepositVenue:
    def __init__(self, inner):
        self.inner = inner

    def deposit(self, ctx, amount):
        self.inner.deposit(ctx, amount)
        raise RuntimeError("venue unavailable")

    def withdraw(self, ctx):
        return self.inner.withdraw(ctx)


class FailingWithdrawVenue(FailingDepositVenue):
    def deposit(self, ctx, amount):
        self.inner.deposit(ctx, amount)

    def withdraw(self, ctx):
        self.inner.withdraw(ctx)
        raise RuntimeError("venue unavailable")


def test_undo_runs_newest_first_and_events_are_dropped():
    calls = []

    with pytest.raises(ValueError):
        with atomic():
            record_undo(lambda: calls.append("first"))
            record_undo(lambda: calls.append("second"))
            defer(lambda: calls.append("event"))
            raise ValueError("boom")

    assert calls == ["second", "first"]


def test_commit_delivers_deferred_callbacks():
    calls = []

    with atomic():
        record_undo(lambda: calls.append("undo"))
        with atomic():
            defer(lambda: calls.append("event"))
        assert calls == []

    assert calls == ["event"]


def test_failed_venue_deposit_rolls_back_everything(world, registry, accounts):
    a = accounts.fund("A", 100)
    lottery_id = registry.create_lottery(a)
    lottery = registry.lookup(lottery_id)
    world.env.venue = FailingDepositVenue(world.venue)

    with pytest.raises(RuntimeError):
        registry.place_bet(a, lottery_id, 40)

    assert accounts.balance("A") == 100
    assert world.ledger.balance_of(lottery.escrow_address) == 0
    assert world.venue.position_of(lottery.escrow_address) == 0
    assert lottery.participants == []
    assert lottery.total_amount == 0
    assert world.events.events == []


def test_failed_withdraw_keeps_lottery_open(world, registry, accounts, force_draws):
    a = accounts.fund("A", 100)
    lottery_id = registry.create_lottery(a)
    registry.place_bet(a, lottery_id, 100)
    lottery = registry.lookup(lottery_id)
    world.env.venue = FailingWithdrawVenue(world.venue)

    force_draws(10)
    with pytest.raises(RuntimeError):
        registry.draw_winner(a, lottery_id)

    assert lottery.is_open is True
    assert lottery.winning_address is None
    assert lottery.winning_ticket is None
    assert world.venue.position_of(lottery.escrow_address) == 100
    assert world.ledger.balance_of(lottery.escrow_address) == 0
    assert accounts.balance("A") == 0

    world.env.venue = world.venue
    force_draws(10)
    registry.draw_winner(a, lottery_id)
    assert accounts.balance("A") == 100


def test_concurrent_bets_across_lotteries(world, registry, accounts):
    players = ["p%d" % i for i in range(4)]
    signers = {p: accounts.fund(p, 10_000) for p in players}
    lottery_ids = [registry.create_lottery(signers[p]) for p in players]
    supply = world.ledger.total_supply()

    def play(player):
        for i in range(50):
            registry.place_bet(signers[player], lottery_ids[i % len(lottery_ids)], 3)

    threads = [threading.Thread(target=play, args=(p,)) for p in players]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for lottery_id in lottery_ids:
        lottery = registry.lookup(lottery_id)
        assert lottery.total_amount == sum(lottery.weights.values())
        assert world.venue.position_of(lottery.escrow_address) == lottery.total_amount
    assert sum(registry.lookup(i).total_amount for i in lottery_ids) == 4 * 50 * 3
    assert world.ledger.total_supply() == supply
    for p in players:
        assert accounts.balance(p) == 10_000 - 150
