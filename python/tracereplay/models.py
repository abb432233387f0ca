"""Architecture and OS descriptors used to configure a replay session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

_VALID_BITS = (8, 16, 32, 64)
_VALID_BYTEORDERS = ("little", "big")


@dataclass(frozen=True)
class Arch:
    """Guest CPU description.

    ``sp`` is the register number whose writes move the stack pointer.  ``pc``
    is optional and only used when rendering register tables.
    """

    name: str
    bits: int
    sp: int
    pc: Optional[int] = None
    reg_names: Dict[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.bits not in _VALID_BITS:
            raise ValueError(f"unsupported word width {self.bits!r} (expected one of {_VALID_BITS})")

    @property
    def word_bytes(self) -> int:
        return self.bits // 8

    @property
    def word_mask(self) -> int:
        return (1 << self.bits) - 1

    def reg_name(self, num: int) -> str:
        return self.reg_names.get(num, f"r{num}")


@dataclass(frozen=True)
class OS:
    name: str


def check_byteorder(byteorder: str) -> str:
    order = str(byteorder).strip().lower()
    if order not in _VALID_BYTEORDERS:
        raise ValueError(f"byteorder must be one of {_VALID_BYTEORDERS} (got {byteorder!r})")
    return order


__all__ = ["Arch", "OS", "check_byteorder"]
