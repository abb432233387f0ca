"""Replay engine: rebuilds CPU state from a trace and republishes it.

Records arrive one at a time through :meth:`Replay.feed`.  Register and memory
records are held back until the instruction that produced them retires, so
observers receive one event per instruction together with its side effects.
Observers are always called *before* the event is applied, so inside a
callback ``replay.pc``/``replay.regs`` still describe the state the
instruction is about to change.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .callstack import Callstack
from .events import Observers, OpHandler
from .memory import AddressSpace, FileDesc, Mapping, Mem
from .models import OS, Arch, check_byteorder
from .ops import (
    CONTAINER_OPS,
    SIDE_EFFECT_OPS,
    Op,
    OpFrame,
    OpJmp,
    OpKeyframe,
    OpMemMap,
    OpMemProt,
    OpMemUnmap,
    OpMemWrite,
    OpReg,
    OpSpReg,
    OpStep,
    OpSyscall,
)
from .symbols import Debugger, Symbol

logger = logging.getLogger(__name__)


class ReplayError(Exception):
    """Raised when the replay engine cannot process a request."""


class UnknownOpError(ReplayError):
    """Raised for objects that are not trace records or are nested illegally."""


class Replay:
    """Single-session trace replay state machine.  Not thread-safe."""

    def __init__(
        self,
        arch: Arch,
        os: OS,
        byteorder: str = "little",
        debug: Optional[Debugger] = None,
        mem: Optional[AddressSpace] = None,
    ) -> None:
        self.arch = arch
        self.os = os
        self.byteorder = check_byteorder(byteorder)
        self.mem: AddressSpace = mem if mem is not None else Mem(arch.bits, self.byteorder)
        self.regs: Dict[int, int] = {}
        self.spregs: Dict[int, bytes] = {}
        self.pc = 0
        self.sp = 0
        self.callstack = Callstack()
        self.debug = debug
        self.inscount = 0

        self._observers = Observers()
        # last unflushed instruction and the records queued behind it
        self._pending: Optional[OpStep] = None
        self._effects: List[Op] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def listen(self, handler: OpHandler) -> int:
        return self._observers.subscribe(handler)

    def unlisten(self, token: int) -> None:
        self._observers.unsubscribe(token)

    def emit(self, op: Op, effects: Sequence[Op] = ()) -> None:
        self._observers.emit(op, tuple(effects))

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------
    @property
    def pending(self) -> Optional[OpStep]:
        return self._pending

    @property
    def pending_effects(self) -> Tuple[Op, ...]:
        return tuple(self._effects)

    def reg(self, num: int, default: int = 0) -> int:
        return self.regs.get(num, default)

    def maps(self) -> List[Mapping]:
        return self.mem.maps()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------
    def feed(self, op: Op) -> None:
        """Process one top-level record, emitting any instructions it retires."""
        if isinstance(op, OpKeyframe):
            # history before the keyframe must be emitted against pre-keyframe state
            self.flush()
            logger.debug("seeding state from keyframe (pid=%s tid=%s, %d ops)", op.pid, op.tid, len(op.ops))
            for inner in op.ops:
                self._update(inner)
            return
        if isinstance(op, OpFrame):
            ops: Iterable[Op] = op.ops
        else:
            ops = (op,)

        for inner in ops:
            if isinstance(inner, OpJmp):
                # a redirect must not pick up effects queued for the previous instruction
                if inner.addr & self.arch.word_mask != self.pc:
                    self.flush()
                self.emit(inner, ())
                self._update(inner)
            elif isinstance(inner, OpStep):
                self.flush()
                self._pending = inner
            elif isinstance(inner, OpSyscall):
                self.flush()
                self._update(inner)
                self.emit(inner, inner.ops)
            elif isinstance(inner, SIDE_EFFECT_OPS):
                self._effects.append(inner)
            elif isinstance(inner, CONTAINER_OPS):
                raise UnknownOpError(f"{type(inner).__name__} cannot be nested inside {type(op).__name__}")
            else:
                raise UnknownOpError(f"not a trace record: {inner!r}")
        # keep single-step consumers in sync with the last record fed
        self.flush()

    def flush(self) -> None:
        """Retire the pending instruction, if any."""
        pending = self._pending
        if pending is None:
            return
        effects = tuple(self._effects)
        self.emit(pending, effects)
        # retire before folding so an adapter fault cannot replay this instruction
        self._effects.clear()
        self._pending = None
        self.inscount += 1
        self._update(pending)
        for effect in effects:
            self._update(effect)

    # ------------------------------------------------------------------
    # State updates
    # ------------------------------------------------------------------
    def _update(self, op: Op) -> None:
        mask = self.arch.word_mask
        if isinstance(op, OpJmp):
            self.pc = op.addr & mask
        elif isinstance(op, OpStep):
            self.pc = (self.pc + op.size) & mask
        elif isinstance(op, OpReg):
            val = op.val & mask
            if op.num == self.arch.sp:
                self.sp = val
                self.callstack.update(self.pc, self.sp)
            self.regs[op.num] = val
        elif isinstance(op, OpSpReg):
            self.spregs[op.num] = op.val
        elif isinstance(op, OpMemMap):
            mapping = self.mem.map(op.addr, op.size, op.prot, True)
            mapping.desc = op.desc
            if op.file:
                mapping.file = FileDesc(name=op.file, off=op.off, len=op.len)
        elif isinstance(op, OpMemUnmap):
            self.mem.unmap(op.addr, op.size)
        elif isinstance(op, OpMemProt):
            self.mem.protect(op.addr, op.size, op.prot)
        elif isinstance(op, OpMemWrite):
            self.mem.write(op.addr, op.data)
        elif isinstance(op, OpSyscall):
            for inner in op.ops:
                self._update(inner)
        elif isinstance(op, CONTAINER_OPS):
            raise UnknownOpError(f"{type(op).__name__} cannot be applied as state")
        else:
            raise UnknownOpError(f"not a trace record: {op!r}")

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------
    def symbolicate(self, addr: int, include_source: bool = False) -> Tuple[Optional[Symbol], str]:
        if self.debug is None:
            raise ReplayError("no debug symbols attached to this replay")
        return self.debug.symbolicate(addr, self.mem.maps(), include_source)


__all__ = ["Replay", "ReplayError", "UnknownOpError"]
