"""
A single pot: its entrants, their weights and the one-way open -> closed
lifecycle.

Operations are meant to be called by `LotteryRegistry`, which holds the
per-lottery lock and wraps each call in `atomic()`. Each operation registers
a snapshot restore first, so a failure at any later step leaves the lottery
exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .atomic import defer, record_undo
from .draw import build_ranges, find_winner
from .errors import (
    InsufficientFunds,
    InvalidAmount,
    LotteryClosed,
    LotteryNotClosed,
    NoPlayers,
    Unauthorized,
    YieldAlreadyClaimed,
)
from .escrow import Capability, EscrowIdentity, SigningContext, address_of, create_escrow, sign_as
from .events import EventSink, TicketEvent, WinnerEvent, YieldClaimedEvent
from .ledger import Ledger
from .project_constants import MAX_AMOUNT
from .randomness import RandomnessSource
from .venue import YieldVenue

log = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """External services a lottery operation runs against."""

    ledger: Ledger
    venue: YieldVenue
    randomness: RandomnessSource
    events: EventSink


@dataclass
class Lottery:
    lottery_id: int
    escrow_identity: EscrowIdentity
    capability: Capability = field(repr=False)
    is_open: bool = True
    participants: List[str] = field(default_factory=list)
    weights: Dict[str, int] = field(default_factory=dict)
    total_amount: int = 0
    winning_ticket: Optional[int] = None
    winning_address: Optional[str] = None
    payout_amount: int = 0
    yield_earned: int = 0
    yield_claimed: bool = False
    seed_info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, lottery_id: int, seed: str) -> "Lottery":
        identity, capability = create_escrow(seed)
        return cls(lottery_id=lottery_id, escrow_identity=identity, capability=capability)

    @property
    def escrow_address(self) -> str:
        return address_of(self.escrow_identity)

    # ---- operations ---------------------------------------------------------

    def place_bet(self, caller: SigningContext, amount: int, env: Collaborators) -> None:
        if not self.is_open:
            raise LotteryClosed(f"Lottery {self.lottery_id} is closed")
        if amount <= 0:
            raise InvalidAmount(f"Deposit must be positive, got {amount}")
        if amount > MAX_AMOUNT or self.total_amount + amount > MAX_AMOUNT:
            raise InvalidAmount(
                f"Deposit of {amount} would push the pot past {MAX_AMOUNT}"
            )

        available = env.ledger.balance_of(caller.address)
        if available < amount:
            raise InsufficientFunds(caller.address, amount, available)

        record_undo(self._restorer())

        env.ledger.transfer(caller, self.escrow_address, amount)

        if caller.address in self.weights:
            self.weights[caller.address] += amount
        else:
            self.participants.append(caller.address)
            self.weights[caller.address] = amount
        self.total_amount += amount

        env.venue.deposit(sign_as(self.capability), amount)

        log.info(
            "Lottery %d: %s deposited %d (pot %d)",
            self.lottery_id,
            caller.address,
            amount,
            self.total_amount,
        )
        event = TicketEvent(caller.address, amount, self.lottery_id)
        defer(lambda: env.events.emit(event))

    def draw_winner(self, caller: SigningContext, env: Collaborators) -> str:
        # Anyone may trigger the draw; is_open is the only reentry guard.
        if not self.is_open:
            raise LotteryClosed(f"Lottery {self.lottery_id} was already drawn")
        if not self.participants:
            raise NoPlayers(f"Lottery {self.lottery_id} has no participants")

        ranges, total_tickets = build_ranges((p, self.weights[p]) for p in self.participants)
        if total_tickets <= 0:
            raise NoPlayers(f"Lottery {self.lottery_id} has no tickets")

        record_undo(self._restorer())

        ticket = env.randomness.uniform_range(0, total_tickets)
        winner = find_winner(ranges, ticket)
        self.winning_ticket = ticket
        self.winning_address = winner.address
        self.seed_info = dict(env.randomness.describe())

        escrow_ctx = sign_as(self.capability)
        before = env.ledger.balance_of(self.escrow_address)
        env.venue.withdraw(escrow_ctx)
        after = env.ledger.balance_of(self.escrow_address)
        returned = after - before
        self.yield_earned = max(0, returned - self.total_amount)

        # Only what the venue returned backs the payout; other escrow funds stay put.
        payout = min(self.total_amount, returned)
        if payout < self.total_amount:
            log.warning(
                "Lottery %d: venue returned %d short of principal %d; paying %d",
                self.lottery_id,
                self.total_amount - payout,
                self.total_amount,
                payout,
            )
        env.ledger.transfer(escrow_ctx, winner.address, payout)
        self.payout_amount = payout
        self.is_open = False

        log.info(
            "Lottery %d drawn by %s: ticket %d of %d -> %s (payout %d, yield %d)",
            self.lottery_id,
            caller.address,
            ticket,
            total_tickets,
            winner.address,
            payout,
            self.yield_earned,
        )
        event = WinnerEvent(winner.address, payout, self.lottery_id)
        defer(lambda: env.events.emit(event))
        return winner.address

    def claim_yield(self, caller: SigningContext, admin_address: str, env: Collaborators) -> int:
        if self.is_open:
            raise LotteryNotClosed(f"Lottery {self.lottery_id} has not been drawn")
        if caller.address != admin_address:
            raise Unauthorized(f"{caller.address} is not the administrator")
        if self.yield_claimed:
            raise YieldAlreadyClaimed(f"Yield of lottery {self.lottery_id} was already claimed")

        record_undo(self._restorer())

        env.ledger.transfer(sign_as(self.capability), caller.address, self.yield_earned)
        self.yield_claimed = True

        log.info("Lottery %d: administrator claimed yield %d", self.lottery_id, self.yield_earned)
        event = YieldClaimedEvent(caller.address, self.yield_earned, self.lottery_id)
        defer(lambda: env.events.emit(event))
        return self.yield_earned

    # ---- snapshots ----------------------------------------------------------

    def _restorer(self) -> Callable[[], None]:
        saved = self.to_dict()

        def restore() -> None:
            self._load(saved)

        return restore

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lottery_id": self.lottery_id,
            "escrow_seed": self.escrow_identity.seed,
            "is_open": self.is_open,
            "participants": list(self.participants),
            "weights": {p: self.weights[p] for p in self.participants},
            "total_amount": self.total_amount,
            "winning_ticket": self.winning_ticket,
            "winning_address": self.winning_address,
            "payout_amount": self.payout_amount,
            "yield_earned": self.yield_earned,
            "yield_claimed": self.yield_claimed,
            "seed_info": dict(self.seed_info),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lottery":
        lottery = cls.new(int(data["lottery_id"]), data["escrow_seed"])
        lottery._load(data)
        return lottery

    def _load(self, data: Dict[str, Any]) -> None:
        self.is_open = bool(data["is_open"])
        self.participants = list(data["participants"])
        self.weights = {p: int(w) for p, w in data["weights"].items()}
        self.total_amount = int(data["total_amount"])
        self.winning_ticket = data.get("winning_ticket")
        self.winning_address = data.get("winning_address")
        self.payout_amount = int(data.get("payout_amount", 0))
        self.yield_earned = int(data.get("yield_earned", 0))
        self.yield_claimed = bool(data.get("yield_claimed", False))
        self.seed_info = dict(data.get("seed_info") or {})
