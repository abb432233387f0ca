"""
Pytest configuration and fixtures for tracereplay tests.
"""
from typing import List, Sequence, Tuple

import pytest

from tracereplay import OS, Arch, Replay
from tracereplay.ops import Op

SP = 4


class Recorder:
    """Observer that keeps every emission together with a state snapshot."""

    def __init__(self, replay: Replay) -> None:
        self.replay = replay
        self.events: List[Tuple[Op, Tuple[Op, ...]]] = []
        self.snapshots: List[dict] = []

    def __call__(self, op: Op, effects: Sequence[Op]) -> None:
        self.events.append((op, tuple(effects)))
        self.snapshots.append(
            {
                "pc": self.replay.pc,
                "sp": self.replay.sp,
                "regs": dict(self.replay.regs),
                "inscount": self.replay.inscount,
                "pending": self.replay.pending,
            }
        )

    @property
    def ops(self) -> List[Op]:
        return [op for op, _ in self.events]


@pytest.fixture
def arch() -> Arch:
    return Arch(
        name="x86_64",
        bits=64,
        sp=SP,
        pc=16,
        reg_names={0: "rax", 1: "rcx", SP: "rsp", 16: "rip"},
    )


@pytest.fixture
def replay(arch: Arch) -> Replay:
    return Replay(arch, OS(name="linux"), "little")


@pytest.fixture
def recorder(replay: Replay) -> Recorder:
    rec = Recorder(replay)
    replay.listen(rec)
    return rec
