"""Call-stack approximation driven by stack-pointer movement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class StackFrame:
    pc: int
    sp: int


class Callstack:
    """Tracks frames from (pc, sp) pairs, assuming a downward-growing stack.

    A frame is pushed whenever SP drops below the innermost frame, and frames
    are discarded once SP rises above them.
    """

    def __init__(self) -> None:
        self._stack: List[StackFrame] = []

    def update(self, pc: int, sp: int) -> None:
        while self._stack and self._stack[-1].sp < sp:
            self._stack.pop()
        if not self._stack or sp < self._stack[-1].sp:
            self._stack.append(StackFrame(pc=pc, sp=sp))

    def peek(self) -> Optional[StackFrame]:
        return self._stack[-1] if self._stack else None

    def frames(self) -> List[StackFrame]:
        """Innermost frame first."""
        return list(reversed(self._stack))

    def freeze(self, pc: int, sp: int) -> List[StackFrame]:
        """Frames with the current location prepended as the innermost entry."""
        return [StackFrame(pc=pc, sp=sp)] + self.frames()

    @property
    def depth(self) -> int:
        return len(self._stack)

    def reset(self) -> None:
        self._stack.clear()


__all__ = ["Callstack", "StackFrame"]
