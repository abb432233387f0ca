"""Guest address-space model used by the replay engine.

:class:`AddressSpace` is the surface the engine drives.  :class:`Mem` is the
default in-process implementation: a sorted list of mappings, each backed by
its own ``bytearray``.  Ranges are half-open (``addr`` .. ``addr + size``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .models import check_byteorder
from .ops import prot_string

logger = logging.getLogger(__name__)


class MemFault(RuntimeError):
    """Raised when an address-space operation cannot be completed."""


@dataclass(frozen=True)
class FileDesc:
    name: str
    off: int = 0
    len: int = 0


@dataclass
class Mapping:
    """One contiguous mapped region."""

    addr: int
    size: int
    prot: int
    desc: str = ""
    file: Optional[FileDesc] = None
    data: bytearray = field(default_factory=bytearray, repr=False, compare=False)

    @property
    def end(self) -> int:
        return self.addr + self.size

    def contains(self, addr: int) -> bool:
        return self.addr <= addr < self.end

    def overlaps(self, addr: int, end: int) -> bool:
        return self.addr < end and addr < self.end

    def __str__(self) -> str:
        text = f"0x{self.addr:x}-0x{self.end:x} {prot_string(self.prot)}"
        if self.desc:
            text += f" {self.desc}"
        if self.file is not None:
            text += f" [{self.file.name}+0x{self.file.off:x}]"
        return text


class AddressSpace:
    """Operations the replay engine forwards memory records to."""

    def map(self, addr: int, size: int, prot: int, force: bool = False) -> Mapping:
        raise NotImplementedError("AddressSpace must implement map()")

    def unmap(self, addr: int, size: int) -> None:
        raise NotImplementedError("AddressSpace must implement unmap()")

    def protect(self, addr: int, size: int, prot: int) -> None:
        raise NotImplementedError("AddressSpace must implement protect()")

    def write(self, addr: int, data: bytes) -> None:
        raise NotImplementedError("AddressSpace must implement write()")

    def maps(self) -> List[Mapping]:
        raise NotImplementedError("AddressSpace must implement maps()")


def _slice(mapping: Mapping, start: int, end: int) -> Mapping:
    """Return the part of ``mapping`` covering ``start`` .. ``end``."""
    delta = start - mapping.addr
    size = end - start
    file_desc = mapping.file
    if file_desc is not None and delta:
        file_desc = FileDesc(
            name=file_desc.name,
            off=file_desc.off + delta,
            len=max(0, file_desc.len - delta),
        )
    return Mapping(
        addr=start,
        size=size,
        prot=mapping.prot,
        desc=mapping.desc,
        file=file_desc,
        data=bytearray(mapping.data[delta : delta + size]),
    )


class Mem(AddressSpace):
    """Sparse guest memory with mapping bookkeeping."""

    def __init__(self, bits: int = 64, byteorder: str = "little") -> None:
        self.bits = bits
        self.byteorder = check_byteorder(byteorder)
        self._maps: List[Mapping] = []

    # ------------------------------------------------------------------
    # Mapping management
    # ------------------------------------------------------------------
    def map(self, addr: int, size: int, prot: int, force: bool = False) -> Mapping:
        if size <= 0:
            raise MemFault(f"invalid map size {size} at 0x{addr:x}")
        end = addr + size
        overlapping = [m for m in self._maps if m.overlaps(addr, end)]
        if overlapping:
            if not force:
                raise MemFault(f"map 0x{addr:x}-0x{end:x} overlaps {overlapping[0]}")
            logger.debug("forced map 0x%x-0x%x replaces %d mapping(s)", addr, end, len(overlapping))
            self._carve(addr, end)
        mapping = Mapping(addr=addr, size=size, prot=prot, data=bytearray(size))
        self._insert(mapping)
        return mapping

    def unmap(self, addr: int, size: int) -> None:
        if not self._carve(addr, addr + size):
            logger.debug("unmap 0x%x+0x%x: nothing mapped", addr, size)

    def protect(self, addr: int, size: int, prot: int) -> None:
        end = addr + size
        touched = [m for m in self._maps if m.overlaps(addr, end)]
        if not touched:
            logger.debug("protect 0x%x+0x%x: nothing mapped", addr, size)
            return
        for mapping in touched:
            self._maps.remove(mapping)
            for piece in self._split(mapping, addr, end):
                if piece.overlaps(addr, end):
                    piece.prot = prot
                self._insert(piece)

    def maps(self) -> List[Mapping]:
        return list(self._maps)

    def find(self, addr: int) -> Optional[Mapping]:
        for mapping in self._maps:
            if mapping.contains(addr):
                return mapping
        return None

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------
    def write(self, addr: int, data: bytes) -> None:
        offset = 0
        for mapping, start, end in self._covering(addr, len(data)):
            chunk = end - start
            rel = start - mapping.addr
            mapping.data[rel : rel + chunk] = data[offset : offset + chunk]
            offset += chunk

    def read(self, addr: int, size: int) -> bytes:
        out = bytearray()
        for mapping, start, end in self._covering(addr, size):
            rel = start - mapping.addr
            out += mapping.data[rel : rel + (end - start)]
        return bytes(out)

    def pack(self, value: int) -> bytes:
        width = self.bits // 8
        return (value & ((1 << self.bits) - 1)).to_bytes(width, self.byteorder)

    def unpack(self, data: bytes) -> int:
        return int.from_bytes(data, self.byteorder)

    def read_word(self, addr: int) -> int:
        return self.unpack(self.read(addr, self.bits // 8))

    def write_word(self, addr: int, value: int) -> None:
        self.write(addr, self.pack(value))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _insert(self, mapping: Mapping) -> None:
        self._maps.append(mapping)
        self._maps.sort(key=lambda m: m.addr)

    @staticmethod
    def _split(mapping: Mapping, addr: int, end: int) -> List[Mapping]:
        """Split ``mapping`` at the ``addr``/``end`` boundaries."""
        cuts = sorted({mapping.addr, mapping.end, *(b for b in (addr, end) if mapping.addr < b < mapping.end)})
        if len(cuts) == 2:
            return [mapping]
        return [_slice(mapping, lo, hi) for lo, hi in zip(cuts, cuts[1:])]

    def _carve(self, addr: int, end: int) -> bool:
        touched = [m for m in self._maps if m.overlaps(addr, end)]
        for mapping in touched:
            self._maps.remove(mapping)
            for piece in self._split(mapping, addr, end):
                if not piece.overlaps(addr, end):
                    self._insert(piece)
        return bool(touched)

    def _covering(self, addr: int, size: int) -> List[Tuple[Mapping, int, int]]:
        end = addr + size
        spans: List[Tuple[Mapping, int, int]] = []
        cursor = addr
        for mapping in self._maps:
            if cursor >= end:
                break
            if mapping.end <= cursor:
                continue
            if mapping.addr > cursor:
                break
            chunk_end = min(end, mapping.end)
            spans.append((mapping, cursor, chunk_end))
            cursor = chunk_end
        if cursor < end:
            raise MemFault(f"access to unmapped memory at 0x{cursor:x} (0x{addr:x}+0x{size:x})")
        return spans


__all__ = ["AddressSpace", "FileDesc", "Mapping", "Mem", "MemFault"]
