"""Trace record types consumed by the replay engine.

Each record describes one atomic fact about guest execution.  Records are
immutable; containers (:class:`OpFrame`, :class:`OpKeyframe`,
:class:`OpSyscall`) hold their nested records as tuples.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

PROT_NONE = 0
PROT_READ = 1
PROT_WRITE = 2
PROT_EXEC = 4
PROT_ALL = PROT_READ | PROT_WRITE | PROT_EXEC


def prot_string(prot: int) -> str:
    """Render protection bits as ``rwx`` with ``-`` for missing bits."""
    return "".join(
        flag if prot & bit else "-"
        for flag, bit in (("r", PROT_READ), ("w", PROT_WRITE), ("x", PROT_EXEC))
    )


@dataclass(frozen=True)
class OpJmp:
    addr: int
    size: int = 0


@dataclass(frozen=True)
class OpStep:
    size: int


@dataclass(frozen=True)
class OpReg:
    num: int
    val: int


@dataclass(frozen=True)
class OpSpReg:
    num: int
    val: bytes


@dataclass(frozen=True)
class OpMemMap:
    addr: int
    size: int
    prot: int
    desc: str = ""
    file: str = ""
    off: int = 0
    len: int = 0


@dataclass(frozen=True)
class OpMemUnmap:
    addr: int
    size: int


@dataclass(frozen=True)
class OpMemProt:
    addr: int
    size: int
    prot: int


@dataclass(frozen=True)
class OpMemWrite:
    addr: int
    data: bytes


@dataclass(frozen=True)
class OpSyscall:
    num: int
    args: Tuple[int, ...] = ()
    ret: int = 0
    desc: str = ""
    ops: Tuple["Op", ...] = ()


@dataclass(frozen=True)
class OpFrame:
    """Groups records; only the contents are ever applied."""

    pid: int = 0
    tid: int = 0
    ops: Tuple["Op", ...] = ()


@dataclass(frozen=True)
class OpKeyframe:
    """Seeds state silently; contents are applied but never emitted."""

    pid: int = 0
    tid: int = 0
    ops: Tuple["Op", ...] = ()


Op = Union[
    OpJmp,
    OpStep,
    OpReg,
    OpSpReg,
    OpMemMap,
    OpMemUnmap,
    OpMemProt,
    OpMemWrite,
    OpSyscall,
    OpFrame,
    OpKeyframe,
]

# records that are queued behind the pending instruction
SIDE_EFFECT_OPS = (OpReg, OpSpReg, OpMemMap, OpMemUnmap, OpMemProt, OpMemWrite)
CONTAINER_OPS = (OpFrame, OpKeyframe)


__all__ = [
    "PROT_NONE",
    "PROT_READ",
    "PROT_WRITE",
    "PROT_EXEC",
    "PROT_ALL",
    "prot_string",
    "Op",
    "OpJmp",
    "OpStep",
    "OpReg",
    "OpSpReg",
    "OpMemMap",
    "OpMemUnmap",
    "OpMemProt",
    "OpMemWrite",
    "OpSyscall",
    "OpFrame",
    "OpKeyframe",
    "SIDE_EFFECT_OPS",
    "CONTAINER_OPS",
]
