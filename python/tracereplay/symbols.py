"""Symbol resolution for replayed addresses."""

from __future__ import annotations

import bisect
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping as MappingT, Optional, Sequence, Tuple

from .memory import Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Symbol:
    name: str
    start: int
    size: int = 0
    offset: int = 0

    def __str__(self) -> str:
        if self.offset:
            return f"{self.name}+0x{self.offset:x}"
        return self.name


class Debugger:
    """Collaborator that turns addresses into symbols and source lines."""

    def symbolicate(
        self, addr: int, mappings: Sequence[Mapping], include_source: bool = False
    ) -> Tuple[Optional[Symbol], str]:
        raise NotImplementedError("Debugger must implement symbolicate()")


def _to_int(value: Any) -> Optional[int]:
    try:
        if isinstance(value, str):
            return int(value, 0)
        if value is None:
            return None
        return int(value)
    except (TypeError, ValueError):
        return None


class SymbolIndex(Debugger):
    """Caches function and line lookups from a JSON .sym file."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._functions: List[Tuple[int, int, str]] = []
        self._starts: List[int] = []
        self._lines: List[Tuple[int, str, int]] = []
        self._line_pcs: List[int] = []
        self._symbol_map: Dict[str, List[int]] = {}
        if path is not None:
            self._load(json.loads(Path(path).read_text(encoding="utf-8")))

    @classmethod
    def from_dict(cls, data: MappingT[str, Any]) -> "SymbolIndex":
        index = cls()
        index._load(data)
        return index

    def _load(self, data: MappingT[str, Any]) -> None:
        symbols_block = data.get("symbols") or {}
        if isinstance(symbols_block, dict):
            self._load_functions(symbols_block.get("functions") or [])
        elif isinstance(symbols_block, list):
            self._load_functions(symbols_block)
        self._load_instructions(data.get("instructions") or [])
        self._functions.sort()
        self._starts = [entry[0] for entry in self._functions]
        self._lines.sort()
        self._line_pcs = [entry[0] for entry in self._lines]
        logger.debug(
            "loaded %d functions and %d line records from %s",
            len(self._functions),
            len(self._lines),
            self.path or "<dict>",
        )

    def _load_functions(self, entries: Sequence[dict]) -> None:
        for entry in entries:
            name = entry.get("name")
            addr = _to_int(entry.get("address"))
            if not isinstance(name, str) or addr is None:
                continue
            size = _to_int(entry.get("size")) or 0
            self._functions.append((addr, size, name))
            self._symbol_map.setdefault(name, []).append(addr)

    def _load_instructions(self, entries: Sequence[dict]) -> None:
        for inst in entries:
            pc = _to_int(inst.get("pc"))
            line = _to_int(inst.get("line"))
            file_value = inst.get("file")
            if pc is None or line is None or not file_value:
                continue
            self._lines.append((pc, str(file_value), line))

    def lookup_symbol(self, name: str) -> List[int]:
        return list(dict.fromkeys(self._symbol_map.get(name, [])))

    def lookup_function(self, addr: int) -> Optional[Symbol]:
        idx = bisect.bisect_right(self._starts, addr) - 1
        if idx < 0:
            return None
        start, size, name = self._functions[idx]
        if size:
            if addr >= start + size:
                return None
        elif idx + 1 < len(self._functions) and addr >= self._functions[idx + 1][0]:
            return None
        return Symbol(name=name, start=start, size=size, offset=addr - start)

    def lookup_line(self, addr: int, floor: int = 0) -> str:
        idx = bisect.bisect_right(self._line_pcs, addr) - 1
        if idx < 0:
            return ""
        pc, file_value, line = self._lines[idx]
        if pc < floor:
            return ""
        return f"{file_value}:{line}"

    def symbolicate(
        self, addr: int, mappings: Sequence[Mapping], include_source: bool = False
    ) -> Tuple[Optional[Symbol], str]:
        if not any(m.contains(addr) for m in mappings):
            return None, ""
        symbol = self.lookup_function(addr)
        if symbol is None:
            return None, ""
        source = self.lookup_line(addr, floor=symbol.start) if include_source else ""
        return symbol, source


__all__ = ["Debugger", "Symbol", "SymbolIndex"]
