"""Synchronous observer registry for replayed ops."""

from __future__ import annotations

from typing import Callable, Dict, Sequence

from .ops import Op

OpHandler = Callable[[Op, Sequence[Op]], None]


class Observers:
    """Fan-out emitted ops to subscribers, in subscription order.

    Handlers run inline.  Exceptions raised by a handler propagate to the
    caller of :meth:`emit` and stop delivery to later handlers.
    """

    def __init__(self) -> None:
        self._subs: Dict[int, OpHandler] = {}
        self._next_token = 1

    def subscribe(self, handler: OpHandler) -> int:
        token = self._next_token
        self._next_token += 1
        self._subs[token] = handler
        return token

    def unsubscribe(self, token: int) -> None:
        self._subs.pop(token, None)

    def emit(self, op: Op, effects: Sequence[Op]) -> None:
        for handler in list(self._subs.values()):
            handler(op, effects)

    def __len__(self) -> int:
        return len(self._subs)


__all__ = ["Observers", "OpHandler"]
