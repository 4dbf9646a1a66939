from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from .atomic import atomic
from .draw import to_tokens
from .errors import NotFound
from .escrow import SigningContext, create_escrow
from .lottery import Collaborators, Lottery
from .project_constants import LOTTERY_SEED_PREFIX, REGISTRY_SEED

log = logging.getLogger(__name__)


class LotteryRegistry:
    """
    Owns every lottery, keyed by an id that only ever grows.

    All four player-facing operations resolve the id, take that lottery's
    lock and run inside one atomic unit, so operations on the same lottery are
    serialized while different lotteries proceed independently.
    """

    def __init__(
        self,
        env: Collaborators,
        admin_address: str,
        seed: str = REGISTRY_SEED,
        next_id: int = 0,
    ) -> None:
        self.env = env
        self.admin_address = admin_address
        self.escrow_identity, self.capability = create_escrow(seed)
        self.next_id = next_id
        self.lotteries: Dict[int, Lottery] = {}
        self._lock = threading.Lock()
        self._lottery_locks: Dict[int, threading.Lock] = {}

    # ---- lifecycle ----------------------------------------------------------

    def create_lottery(self, caller: SigningContext) -> int:
        with self._lock:
            lottery_id = self.next_id
            seed = f"{LOTTERY_SEED_PREFIX}{self.escrow_identity.address}:{lottery_id}"
            self._register(Lottery.new(lottery_id, seed))
            self.next_id = lottery_id + 1

        log.info("Lottery %d created by %s", lottery_id, caller.address)
        return lottery_id

    def place_bet(self, caller: SigningContext, lottery_id: int, amount: int) -> None:
        with self._exclusive(lottery_id) as lottery:
            lottery.place_bet(caller, amount, self.env)

    def draw_winner(self, caller: SigningContext, lottery_id: int) -> str:
        with self._exclusive(lottery_id) as lottery:
            return lottery.draw_winner(caller, self.env)

    def claim_yield(self, caller: SigningContext, lottery_id: int) -> int:
        with self._exclusive(lottery_id) as lottery:
            return lottery.claim_yield(caller, self.admin_address, self.env)

    # ---- lookup -------------------------------------------------------------

    def lookup(self, lottery_id: int) -> Lottery:
        with self._lock:
            try:
                return self.lotteries[lottery_id]
            except KeyError:
                raise NotFound(lottery_id) from None

    def lottery_ids(self) -> List[int]:
        with self._lock:
            return sorted(self.lotteries)

    def summary(self, lottery_id: int) -> Dict[str, Any]:
        with self._exclusive(lottery_id) as lottery:
            data = lottery.to_dict()
            data["escrow_address"] = lottery.escrow_address
            data["pot_tokens"] = to_tokens(lottery.total_amount)
            data["escrow_balance"] = self.env.ledger.balance_of(lottery.escrow_address)
        return data

    @contextmanager
    def _exclusive(self, lottery_id: int) -> Iterator[Lottery]:
        with self._lock:
            lottery = self.lotteries.get(lottery_id)
            lock = self._lottery_locks.get(lottery_id)
        if lottery is None or lock is None:
            raise NotFound(lottery_id)
        with lock, atomic():
            yield lottery

    def _register(self, lottery: Lottery) -> None:
        self.lotteries[lottery.lottery_id] = lottery
        self._lottery_locks[lottery.lottery_id] = threading.Lock()

    # ---- persistence --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            lotteries = [self.lotteries[i].to_dict() for i in sorted(self.lotteries)]
            return {
                "seed": self.escrow_identity.seed,
                "admin_address": self.admin_address,
                "next_id": self.next_id,
                "lotteries": lotteries,
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], env: Collaborators) -> "LotteryRegistry":
        registry = cls(
            env,
            admin_address=data["admin_address"],
            seed=data["seed"],
            next_id=int(data["next_id"]),
        )
        for item in data["lotteries"]:
            lottery = Lottery.from_dict(item)
            if lottery.lottery_id >= registry.next_id:
                raise RuntimeError(
                    f"Corrupt state: lottery id {lottery.lottery_id} >= next_id {registry.next_id}"
                )
            registry._register(lottery)
        return registry
