"""Error kinds raised by lottery operations.

Every error aborts the whole operation; nothing a failed call did stays
visible.
"""

from __future__ import annotations


class LotteryError(Exception):
    code = "lottery_error"


class NotFound(LotteryError):
    code = "not_found"

    def __init__(self, lottery_id: int) -> None:
        super().__init__(f"Lottery {lottery_id} does not exist")
        self.lottery_id = lottery_id


class InsufficientFunds(LotteryError):
    code = "insufficient_funds"

    def __init__(self, address: str, needed: int, available: int) -> None:
        super().__init__(
            f"Account {address} holds {available}, needs {needed}"
        )
        self.address = address
        self.needed = needed
        self.available = available


class NoPlayers(LotteryError):
    code = "no_players"


class LotteryNotClosed(LotteryError):
    code = "lottery_not_closed"


class LotteryClosed(LotteryError):
    code = "lottery_closed"


class Unauthorized(LotteryError):
    code = "unauthorized"


class InvalidAmount(LotteryError):
    code = "invalid_amount"


class YieldAlreadyClaimed(LotteryError):
    code = "yield_already_claimed"
