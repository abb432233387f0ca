"""
tracereplay - Trace replay toolkit for emulator front-ends.

This package rebuilds guest CPU state (PC, SP, registers, address space and an
approximate call stack) from a stream of execution records and republishes the
stream to debuggers, REPLs and UIs as one event per retired instruction.
Each module is implemented in its own file to keep responsibilities clear:

    ops.py        → trace record types
    models.py     → architecture / OS descriptors
    memory.py     → address-space adapter and default memory model
    callstack.py  → call-stack tracking from SP movement
    symbols.py    → symbol and source-line lookup
    events.py     → observer registry
    replay.py     → batching state machine and state-update rules
    output.py     → text rendering and a printing observer
"""

from .ops import (  # noqa: F401
    PROT_ALL,
    PROT_EXEC,
    PROT_NONE,
    PROT_READ,
    PROT_WRITE,
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
from .models import Arch, OS  # noqa: F401
from .memory import AddressSpace, FileDesc, Mapping, Mem, MemFault  # noqa: F401
from .callstack import Callstack, StackFrame  # noqa: F401
from .symbols import Debugger, Symbol, SymbolIndex  # noqa: F401
from .events import Observers  # noqa: F401
from .replay import Replay, ReplayError, UnknownOpError  # noqa: F401
from .output import TracePrinter, format_op, render_mappings, render_registers  # noqa: F401

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
    "Arch",
    "OS",
    "AddressSpace",
    "FileDesc",
    "Mapping",
    "Mem",
    "MemFault",
    "Callstack",
    "StackFrame",
    "Debugger",
    "Symbol",
    "SymbolIndex",
    "Observers",
    "Replay",
    "ReplayError",
    "UnknownOpError",
    "TracePrinter",
    "format_op",
    "render_registers",
    "render_mappings",
]

__version__ = "0.1.0-dev"
