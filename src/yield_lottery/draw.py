from __future__ import annotations

import hashlib
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .errors import NoPlayers
from .project_constants import TOKEN_DECIMALS


@dataclass(frozen=True)
class TicketRange:
    address: str
    weight: int
    start_ticket: int
    end_ticket: int  # exclusive


def to_tokens(raw_amount: int) -> float:
    return round(raw_amount / (10**TOKEN_DECIMALS), 6)


def build_ranges(entries: Iterable[Tuple[str, int]]) -> Tuple[List[TicketRange], int]:
    """Lay the entries end to end as half-open ranges, in the order given."""
    ranges: List[TicketRange] = []
    cursor = 0
    for addr, weight in entries:
        start = cursor
        end = cursor + weight
        ranges.append(TicketRange(addr, weight, start, end))
        cursor = end
    return ranges, cursor


def compute_ticket(seed: str, total_tickets: int) -> Tuple[int, str, int]:
    """Reduce SHA-256(seed) modulo `total_tickets`; returns (ticket, hash hex, hash int)."""
    seed_hash_hex = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    seed_int = int(seed_hash_hex, 16)
    return seed_int % total_tickets, seed_hash_hex, seed_int


def find_winner(ranges: List[TicketRange], ticket: int) -> TicketRange:
    """First range whose end strictly exceeds `ticket`.

    Zero-weight ranges have start == end and can never be selected.
    """
    if not ranges:
        raise NoPlayers("Cannot pick a winner without entrants")
    ends = [r.end_ticket for r in ranges]
    idx = bisect_right(ends, ticket)
    if ticket < 0 or idx >= len(ranges):
        raise ValueError(f"Ticket {ticket} out of range [0, {ends[-1]})")
    return ranges[idx]
