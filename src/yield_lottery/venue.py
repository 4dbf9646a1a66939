"""
Yield venue the pot is parked in while a lottery is open.

`InMemoryYieldVenue` keeps one position per depositing address and holds the
funds in its own vault account on the ledger. `accrue` simulates the venue's
performance: positive basis points mint new value into the vault, negative
ones burn it.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Protocol

from .atomic import record_undo
from .errors import InvalidAmount
from .escrow import SigningContext, create_escrow
from .ledger import Ledger
from .project_constants import BPS_DENOMINATOR, VENUE_SEED

log = logging.getLogger(__name__)


class YieldVenue(Protocol):
    def deposit(self, ctx: SigningContext, amount: int) -> None: ...

    def withdraw(self, ctx: SigningContext) -> int: ...


class InMemoryYieldVenue:
    def __init__(
        self,
        ledger: Ledger,
        seed: str = VENUE_SEED,
        positions: Dict[str, int] | None = None,
    ) -> None:
        self.ledger = ledger
        self.vault, self._vault_cap = create_escrow(seed)
        self._positions: Dict[str, int] = dict(positions or {})
        self._lock = threading.Lock()

    def position_of(self, address: str) -> int:
        with self._lock:
            return self._positions.get(address, 0)

    def positions(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._positions)

    def deposit(self, ctx: SigningContext, amount: int) -> None:
        self.ledger.transfer(ctx, self.vault.address, amount)
        with self._lock:
            self._positions[ctx.address] = self._positions.get(ctx.address, 0) + amount
        log.debug("venue deposit %s : %d", ctx.address, amount)
        record_undo(lambda: self._set(ctx.address, -amount))

    def withdraw(self, ctx: SigningContext) -> int:
        """Withdraw the entire position of `ctx.address`; returns the amount paid."""
        with self._lock:
            amount = self._positions.pop(ctx.address, 0)
        record_undo(lambda: self._set(ctx.address, amount))
        if amount:
            self.ledger.transfer(self._vault_cap.sign(), ctx.address, amount)
        log.debug("venue withdraw %s : %d", ctx.address, amount)
        return amount

    def accrue(self, bps: int) -> int:
        """Grow (or shrink) every open position by `bps` basis points.

        Returns the net change applied across all positions.
        """
        if bps < -BPS_DENOMINATOR:
            raise InvalidAmount(f"Cannot lose more than the whole position ({bps} bps)")

        net = 0
        for address, position in self.positions().items():
            delta = position * abs(bps) // BPS_DENOMINATOR
            if not delta:
                continue
            if bps > 0:
                self.ledger.mint(self.vault.address, delta)
                self._set(address, delta)
                record_undo(lambda a=address, d=delta: self._set(a, -d))
                net += delta
            else:
                self.ledger.burn(self.vault.address, delta)
                self._set(address, -delta)
                record_undo(lambda a=address, d=delta: self._set(a, d))
                net -= delta

        log.info("Venue accrued %d bps over positions (net %d)", bps, net)
        return net

    def _set(self, address: str, delta: int) -> None:
        with self._lock:
            value = self._positions.get(address, 0) + delta
            if value:
                self._positions[address] = value
            else:
                self._positions.pop(address, None)
