from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Protocol, Union

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TicketEvent:
    address: str
    amount: int
    lottery_id: int


@dataclass(frozen=True)
class WinnerEvent:
    address: str
    amount: int
    lottery_id: int


@dataclass(frozen=True)
class YieldClaimedEvent:
    address: str
    amount: int
    lottery_id: int


LotteryEvent = Union[TicketEvent, WinnerEvent, YieldClaimedEvent]


class EventSink(Protocol):
    def emit(self, event: LotteryEvent) -> None: ...


class RecordingEventSink:
    """Keeps every emitted event in order and logs it."""

    def __init__(self) -> None:
        self.events: List[LotteryEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: LotteryEvent) -> None:
        with self._lock:
            self.events.append(event)
        log.info(
            "%s lottery=%d address=%s amount=%d",
            type(event).__name__,
            event.lottery_id,
            event.address,
            event.amount,
        )

    def of_type(self, event_type: type) -> List[LotteryEvent]:
        with self._lock:
            return [e for e in self.events if isinstance(e, event_type)]
