"""Table instances holding function or extern references."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from tinywasm.errors import TableOutOfBounds, TinyWasmError, UnsupportedFeature
from tinywasm.module import TableType
from tinywasm.values import ValType, WasmValue

logger = logging.getLogger(__name__)

MAX_TABLE_SIZE = 10_000_000

# A table element is an address, or None while uninitialised.
TableElement = Optional[int]


class TableInstance:
    """A table of references."""

    def __init__(self, kind: TableType, owner: int = 0) -> None:
        self.kind = kind
        self.elements: list[TableElement] = [None] * kind.size_initial
        self.owner = owner

    def _span(self, addr: int, length: int) -> int:
        end = addr + length
        if addr < 0 or length < 0 or end > len(self.elements):
            raise TableOutOfBounds(addr, length, len(self.elements))
        return end

    def get_wasm_val(self, addr: int) -> WasmValue:
        """The element at `addr` as a reference value."""
        val = self.get(addr)
        ty = self.kind.element_type
        if ty is ValType.RefFunc:
            return WasmValue.ref_null(ty) if val is None else WasmValue.ref_func(val)
        if ty is ValType.RefExtern:
            return WasmValue.ref_null(ty) if val is None else WasmValue.ref_extern(val)
        raise UnsupportedFeature("non-ref table")

    def fill(self, func_addrs: Sequence[int], addr: int, length: int, val: TableElement) -> None:
        """Set `length` elements from `addr` to `val`, resolving function indices."""
        if val is not None:
            val = self._resolve_func_ref(func_addrs, val)
        end = self._span(addr, length)
        self.elements[addr:end] = [val] * length

    def get(self, addr: int) -> TableElement:
        """The element at `addr`."""
        if not 0 <= addr < len(self.elements):
            raise TableOutOfBounds(addr, 1, len(self.elements))
        return self.elements[addr]

    def copy_from_slice(self, dst: int, src: Iterable[TableElement]) -> None:
        """Copy all of `src` into the table at `dst`."""
        items = list(src)
        end = self._span(dst, len(items))
        self.elements[dst:end] = items

    def load(self, addr: int, length: int) -> list[TableElement]:
        """A copy of `length` elements starting at `addr`."""
        end = self._span(addr, length)
        return self.elements[addr:end]

    def copy_within(self, dst: int, src: int, length: int) -> None:
        """Copy `length` elements from `src` to `dst`; the ranges may overlap."""
        src_end = self._span(src, length)
        dst_end = self._span(dst, length)
        self.elements[dst:dst_end] = self.elements[src:src_end]

    def set(self, index: int, value: TableElement) -> None:
        """Replace the element at `index`."""
        if not 0 <= index < len(self.elements):
            raise TableOutOfBounds(index, 1, len(self.elements))
        self.elements[index] = value

    def grow(self, n: int, init: TableElement) -> None:
        """Append `n` elements set to `init`."""
        if n < 0:
            raise TableOutOfBounds(0, 1, len(self.elements))
        new_len = n + len(self.elements)
        limit = MAX_TABLE_SIZE if self.kind.size_max is None else self.kind.size_max
        if new_len > limit:
            raise TableOutOfBounds(new_len, 1, len(self.elements))
        self.elements.extend([init] * n)

    def size(self) -> int:
        """The number of elements."""
        return len(self.elements)

    def _resolve_func_ref(self, func_addrs: Sequence[int], addr: int) -> int:
        if self.kind.element_type is not ValType.RefFunc:
            return addr
        if not 0 <= addr < len(func_addrs):
            raise TinyWasmError(f"error initializing table: function {addr} not found")
        return func_addrs[addr]

    def init(self, offset: int, items: Iterable[TableElement]) -> None:
        """Copy `items` into the table starting at `offset`."""
        values = list(items)
        end = self._span(offset, len(values))
        self.elements[offset:end] = values
        logger.debug("table: %r", self.elements)