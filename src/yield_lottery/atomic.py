"""
All-or-nothing execution of one lottery operation.

Stateful collaborators call `record_undo` after each mutation they apply.
Inside an `atomic()` block the undo callbacks are collected; if the block
raises they run newest-first, then the exception propagates. Outside a block
`record_undo` is a no-op.

Events are handed to `defer` and only delivered once the outermost block
commits.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

log = logging.getLogger(__name__)


class _Journal:
    def __init__(self) -> None:
        self.undo: List[Callable[[], None]] = []
        self.after_commit: List[Callable[[], None]] = []


_current: contextvars.ContextVar[Optional[_Journal]] = contextvars.ContextVar(
    "yield_lottery_journal", default=None
)


def record_undo(fn: Callable[[], None]) -> None:
    journal = _current.get()
    if journal is not None:
        journal.undo.append(fn)


def defer(fn: Callable[[], None]) -> None:
    journal = _current.get()
    if journal is None:
        fn()
    else:
        journal.after_commit.append(fn)


@contextmanager
def atomic() -> Iterator[None]:
    outer = _current.get()
    if outer is not None:
        # Nested blocks join the outer unit of work.
        yield
        return

    journal = _Journal()
    token = _current.set(journal)
    try:
        yield
    except BaseException:
        log.debug("Rolling back %d change(s)", len(journal.undo))
        for fn in reversed(journal.undo):
            fn()
        raise
    finally:
        _current.reset(token)

    for fn in journal.after_commit:
        fn()
