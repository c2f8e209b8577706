"""Undo log for in-memory repository transactions.

In-memory repos call ``record_undo`` after every write.  Outside a
transaction it is a no-op; inside ``InMemoryStore.transaction()`` the
callbacks are collected per task (ContextVar) and replayed in reverse
order if the transaction body raises.
"""

from __future__ import annotations

from collections.abc import Callable
from contextvars import ContextVar

UndoFn = Callable[[], None]

_active_log: ContextVar[list[UndoFn] | None] = ContextVar("_active_log", default=None)


def record_undo(fn: UndoFn) -> None:
    log = _active_log.get()
    if log is not None:
        log.append(fn)


def in_transaction() -> bool:
    return _active_log.get() is not None


def begin() -> tuple[list[UndoFn], object]:
    log: list[UndoFn] = []
    token = _active_log.set(log)
    return log, token


def end(token: object) -> None:
    _active_log.reset(token)  # type: ignore[arg-type]


def rollback(log: list[UndoFn]) -> None:
    for undo in reversed(log):
        undo()
    log.clear()
