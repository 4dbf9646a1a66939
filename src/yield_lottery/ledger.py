from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Dict

from .atomic import record_undo
from .errors import InsufficientFunds, InvalidAmount
from .escrow import SigningContext

log = logging.getLogger(__name__)


class Ledger:
    """In-process value-transfer primitive: integer balances per address."""

    def __init__(self, balances: Dict[str, int] | None = None) -> None:
        self._balances: Dict[str, int] = defaultdict(int)
        if balances:
            for addr, amount in balances.items():
                self._balances[addr] = int(amount)
        self._lock = threading.Lock()

    def balance_of(self, address: str) -> int:
        with self._lock:
            return self._balances.get(address, 0)

    def transfer(self, ctx: SigningContext, to: str, amount: int) -> None:
        if not isinstance(ctx, SigningContext):
            raise TypeError("transfer requires a SigningContext")
        if amount < 0:
            raise InvalidAmount(f"Transfer amount must not be negative, got {amount}")

        with self._lock:
            available = self._balances.get(ctx.address, 0)
            if available < amount:
                raise InsufficientFunds(ctx.address, amount, available)
            self._balances[ctx.address] -= amount
            self._balances[to] += amount

        log.debug("transfer %s -> %s : %d", ctx.address, to, amount)
        record_undo(lambda: self._move(to, ctx.address, amount))

    def mint(self, address: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(f"Mint amount must be positive, got {amount}")
        with self._lock:
            self._balances[address] += amount
        log.debug("mint %s : %d", address, amount)
        record_undo(lambda: self._adjust(address, -amount))

    def burn(self, address: str, amount: int) -> None:
        with self._lock:
            available = self._balances.get(address, 0)
            if available < amount:
                raise InsufficientFunds(address, amount, available)
            self._balances[address] -= amount
        log.debug("burn %s : %d", address, amount)
        record_undo(lambda: self._adjust(address, amount))

    def total_supply(self) -> int:
        with self._lock:
            return sum(self._balances.values())

    def balances(self) -> Dict[str, int]:
        with self._lock:
            return {a: b for a, b in self._balances.items() if b}

    def _move(self, src: str, dst: str, amount: int) -> None:
        with self._lock:
            self._balances[src] -= amount
            self._balances[dst] += amount

    def _adjust(self, address: str, delta: int) -> None:
        with self._lock:
            self._balances[address] += delta
