"""Text rendering helpers for replayed ops and machine state."""

from __future__ import annotations

import sys
from typing import Iterable, Mapping as MappingT, Optional, Sequence, TextIO

from tabulate import tabulate

from .memory import Mapping
from .models import Arch
from .ops import (
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
    prot_string,
)


def _reg(arch: Optional[Arch], num: int) -> str:
    return arch.reg_name(num) if arch is not None else f"r{num}"


def _hexdump(data: bytes, limit: int = 16) -> str:
    text = data[:limit].hex()
    if len(data) > limit:
        text += f"... ({len(data)} bytes)"
    return text


def format_op(op: Op, arch: Optional[Arch] = None) -> str:
    """One-line description of a trace record."""
    if isinstance(op, OpJmp):
        return f"jmp 0x{op.addr:x}"
    if isinstance(op, OpStep):
        return f"step +{op.size}"
    if isinstance(op, OpReg):
        return f"{_reg(arch, op.num)} = 0x{op.val:x}"
    if isinstance(op, OpSpReg):
        return f"{_reg(arch, op.num)} = {_hexdump(op.val)}"
    if isinstance(op, OpMemMap):
        text = f"mmap 0x{op.addr:x}+0x{op.size:x} {prot_string(op.prot)}"
        if op.desc:
            text += f" {op.desc}"
        if op.file:
            text += f" [{op.file}+0x{op.off:x}]"
        return text
    if isinstance(op, OpMemUnmap):
        return f"munmap 0x{op.addr:x}+0x{op.size:x}"
    if isinstance(op, OpMemProt):
        return f"mprotect 0x{op.addr:x}+0x{op.size:x} {prot_string(op.prot)}"
    if isinstance(op, OpMemWrite):
        return f"[0x{op.addr:x}] <- {_hexdump(op.data)}"
    if isinstance(op, OpSyscall):
        name = op.desc or f"syscall_{op.num}"
        args = ", ".join(f"0x{arg:x}" for arg in op.args)
        return f"{name}({args}) = 0x{op.ret:x}"
    if isinstance(op, OpFrame):
        return f"frame pid={op.pid} tid={op.tid} ({len(op.ops)} ops)"
    if isinstance(op, OpKeyframe):
        return f"keyframe pid={op.pid} tid={op.tid} ({len(op.ops)} ops)"
    raise TypeError(f"not a trace record: {op!r}")


def render_registers(
    regs: MappingT[int, int],
    arch: Arch,
    spregs: Optional[MappingT[int, bytes]] = None,
) -> str:
    """Render a register table sorted by register number."""
    width = arch.word_bytes * 2
    rows = [[arch.reg_name(num), f"0x{value & arch.word_mask:0{width}x}"] for num, value in sorted(regs.items())]
    for num, blob in sorted((spregs or {}).items()):
        rows.append([arch.reg_name(num), blob.hex()])
    return tabulate(rows, headers=["reg", "value"], tablefmt="github")


def render_mappings(mappings: Iterable[Mapping]) -> str:
    rows = []
    for m in mappings:
        backing = f"{m.file.name}+0x{m.file.off:x}" if m.file is not None else ""
        rows.append([f"0x{m.addr:x}", f"0x{m.end:x}", prot_string(m.prot), m.desc, backing])
    return tabulate(rows, headers=["start", "end", "prot", "desc", "file"], tablefmt="github")


class TracePrinter:
    """Observer that writes each retired op and its effects to a stream."""

    def __init__(self, replay, stream: Optional[TextIO] = None, *, show_effects: bool = True) -> None:
        self.replay = replay
        self.stream = stream if stream is not None else sys.stdout
        self.show_effects = show_effects

    def attach(self) -> int:
        return self.replay.listen(self)

    def _label(self, addr: int) -> str:
        if self.replay.debug is None:
            return ""
        symbol, _ = self.replay.symbolicate(addr)
        return f" <{symbol}>" if symbol is not None else ""

    def __call__(self, op: Op, effects: Sequence[Op]) -> None:
        arch = self.replay.arch
        pc = self.replay.pc
        # jumps are emitted before the pc moves; label their target instead
        addr = op.addr if isinstance(op, OpJmp) else pc
        self.stream.write(f"0x{addr:x}{self._label(addr)}: {format_op(op, arch)}\n")
        if self.show_effects:
            for effect in effects:
                self.stream.write(f"    {format_op(effect, arch)}\n")


__all__ = ["format_op", "render_registers", "render_mappings", "TracePrinter"]
