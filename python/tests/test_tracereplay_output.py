import io

import pytest

from tracereplay import (
    OS,
    PROT_EXEC,
    PROT_READ,
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
    Replay,
    SymbolIndex,
    TracePrinter,
    format_op,
    render_mappings,
    render_registers,
)


def test_format_op_covers_every_record(arch):
    assert format_op(OpJmp(0x400000)) == "jmp 0x400000"
    assert format_op(OpStep(3)) == "step +3"
    assert format_op(OpReg(0, 0x2A), arch) == "rax = 0x2a"
    assert format_op(OpReg(9, 1), arch) == "r9 = 0x1"
    assert format_op(OpSpReg(1, b"\x01\x02"), arch) == "rcx = 0102"
    assert format_op(OpMemMap(0x1000, 0x2000, PROT_READ | PROT_EXEC, "text", "a.out", 0x40, 0x2000)) == (
        "mmap 0x1000+0x2000 r-x text [a.out+0x40]"
    )
    assert format_op(OpMemUnmap(0x1000, 0x10)) == "munmap 0x1000+0x10"
    assert format_op(OpMemProt(0x1000, 0x10, PROT_READ)) == "mprotect 0x1000+0x10 r--"
    assert format_op(OpMemWrite(0x10, b"\xaa\xbb")) == "[0x10] <- aabb"
    assert format_op(OpSyscall(num=1, args=(1, 0x10), ret=2, desc="write")) == "write(0x1, 0x10) = 0x2"
    assert format_op(OpSyscall(num=60)) == "syscall_60() = 0x0"
    assert format_op(OpFrame(pid=1, tid=2, ops=(OpStep(1),))) == "frame pid=1 tid=2 (1 ops)"
    assert format_op(OpKeyframe()) == "keyframe pid=0 tid=0 (0 ops)"


def test_format_op_truncates_long_writes():
    text = format_op(OpMemWrite(0, bytes(range(20))))
    assert text.endswith("... (20 bytes)")


def test_format_op_rejects_unknown_objects():
    with pytest.raises(TypeError):
        format_op("nope")


def test_render_registers_and_mappings(replay, arch):
    replay.feed(
        OpKeyframe(
            ops=(
                OpReg(0, 0x10),
                OpReg(4, 0x7FF0),
                OpSpReg(1, b"\xff"),
                OpMemMap(0x1000, 0x1000, PROT_READ | PROT_EXEC, desc="text", file="a.out", off=0, len=0x1000),
            )
        )
    )
    regs = render_registers(replay.regs, arch, replay.spregs)
    assert "rax" in regs
    assert "0x0000000000000010" in regs
    assert "rsp" in regs
    assert "ff" in regs
    maps = render_mappings(replay.maps())
    assert "0x1000" in maps
    assert "r-x" in maps
    assert "a.out+0x0" in maps


def test_trace_printer_writes_ops_and_effects(replay):
    out = io.StringIO()
    printer = TracePrinter(replay, out)
    printer.attach()
    replay.feed(OpFrame(ops=(OpJmp(0x1000), OpStep(4), OpReg(0, 1))))
    assert out.getvalue().splitlines() == [
        "0x1000: jmp 0x1000",
        "0x1000: step +4",
        "    rax = 0x1",
    ]


def test_trace_printer_labels_addresses_with_symbols(arch):
    index = SymbolIndex.from_dict({"symbols": {"functions": [{"name": "_start", "address": 0x1000, "size": 0x10}]}})
    replay = Replay(arch, OS("linux"), debug=index)
    replay.feed(OpKeyframe(ops=(OpMemMap(0x1000, 0x1000, PROT_READ | PROT_EXEC),)))
    out = io.StringIO()
    replay.listen(TracePrinter(replay, out, show_effects=False))
    replay.feed(OpFrame(ops=(OpJmp(0x1000), OpStep(2), OpReg(0, 1), OpStep(2))))
    assert out.getvalue().splitlines() == [
        "0x1000 <_start>: jmp 0x1000",
        "0x1000 <_start>: step +2",
        "0x1002 <_start+0x2>: step +2",
    ]
