import pytest

from yield_lottery.draw import build_ranges, compute_ticket, find_winner, to_tokens
from yield_lottery.errors import NoPlayers


def test_build_ranges_are_contiguous_in_insertion_order():
    ranges, total = build_ranges([("a", 10), ("b", 20), ("c", 70)])

    assert total == 100
    assert [(r.start_ticket, r.end_ticket) for r in ranges] == [(0, 10), (10, 30), (30, 100)]


@pytest.mark.parametrize(
    "ticket, expected",
    [(5, "a"), (15, "b"), (99, "c"), (0, "a"), (9, "a"), (10, "b"), (29, "b"), (30, "c")],
)
def test_find_winner_weighted_ranges(ticket, expected):
    ranges, _ = build_ranges([("a", 10), ("b", 20), ("c", 70)])

    assert find_winner(ranges, ticket).address == expected


def test_top_ticket_resolves_to_last_entrant():
    ranges, total = build_ranges([("a", 3), ("b", 1)])

    assert find_winner(ranges, total - 1).address == "b"


def test_zero_weight_entrant_is_never_selected():
    ranges, total = build_ranges([("a", 5), ("zero", 0), ("b", 5)])

    winners = {find_winner(ranges, t).address for t in range(total)}
    assert winners == {"a", "b"}


def test_ticket_outside_range_is_rejected():
    ranges, total = build_ranges([("a", 5)])

    with pytest.raises(ValueError):
        find_winner(ranges, total)
    with pytest.raises(ValueError):
        find_winner(ranges, -1)


def test_find_winner_without_entrants():
    with pytest.raises(NoPlayers):
        find_winner([], 0)


def test_compute_ticket_is_deterministic():
    first = compute_ticket("blockhash-abc", 1000)
    second = compute_ticket("blockhash-abc", 1000)

    assert first == second
    assert 0 <= first[0] < 1000
    assert first[2] % 1000 == first[0]


def test_to_tokens():
    assert to_tokens(1_500_000) == 1.5
