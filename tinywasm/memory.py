"""Linear memory instances."""

from __future__ import annotations

import logging
import struct
from typing import Optional, Union

from tinywasm.errors import MemoryOutOfBounds
from tinywasm.module import MemoryType

logger = logging.getLogger(__name__)

_WIDE_FORMATS = {"u128": False, "i128": True}


class MemoryInstance:
    """A linear memory: a zero-initialised byte array grown in pages."""

    def __init__(self, kind: MemoryType, owner: int = 0) -> None:
        if kind.page_count_initial > kind.page_count_max():
            raise ValueError("initial page count exceeds the maximum")
        logger.debug(
            "initializing memory with %d pages of %d bytes", kind.page_count_initial, kind.page_size()
        )
        self.kind = kind
        self.data = bytearray(kind.initial_size())
        self.page_count = kind.page_count_initial
        self.owner = owner

    def __len__(self) -> int:
        return len(self.data)

    def _span(self, addr: int, length: int, reported: Optional[int] = None) -> int:
        end = addr + length
        if addr < 0 or length < 0 or end > len(self.data):
            raise MemoryOutOfBounds(addr, length if reported is None else reported, len(self.data))
        return end

    def store(self, addr: int, length: int, data: bytes) -> None:
        """Write `length` bytes of `data` at `addr`."""
        end = self._span(addr, length, len(data))
        if len(data) != length:
            raise ValueError(f"expected {length} bytes, got {len(data)}")
        self.data[addr:end] = data

    def max_pages(self) -> int:
        """The largest page count this memory may reach."""
        return self.kind.page_count_max()

    def load(self, addr: int, length: int) -> bytes:
        """Read `length` bytes starting at `addr`."""
        end = self._span(addr, length)
        return bytes(self.data[addr:end])

    def load_as(self, addr: int, fmt: Union[str, struct.Struct]) -> object:
        """Read a little-endian value described by a struct format, or "u128"/"i128"."""
        if isinstance(fmt, str) and fmt in _WIDE_FORMATS:
            end = self._span(addr, 16)
            return int.from_bytes(self.data[addr:end], "little", signed=_WIDE_FORMATS[fmt])
        if isinstance(fmt, struct.Struct):
            layout = fmt
        else:
            layout = struct.Struct(fmt if fmt[:1] and fmt[0] in "<>!=@" else "<" + fmt)
        self._span(addr, layout.size)
        values = layout.unpack_from(self.data, addr)
        return values[0] if len(values) == 1 else values

    def fill(self, addr: int, length: int, val: int) -> None:
        """Set `length` bytes starting at `addr` to `val`."""
        end = self._span(addr, length)
        self.data[addr:end] = bytes((val,)) * length

    def copy_from_slice(self, dst: int, src: bytes) -> None:
        """Copy all of `src` into memory at `dst`."""
        end = self._span(dst, len(src))
        self.data[dst:end] = src

    def copy_within(self, dst: int, src: int, length: int) -> None:
        """Copy `length` bytes from `src` to `dst`; the ranges may overlap."""
        src_end = self._span(src, length)
        dst_end = self._span(dst, length)
        self.data[dst:dst_end] = self.data[src:src_end]

    def grow(self, pages_delta: int) -> Optional[int]:
        """Grow by a number of pages; return the old page count, or None on failure."""
        current = self.page_count
        new_pages = current + pages_delta
        if new_pages < 0 or new_pages > self.max_pages():
            logger.debug("memory.grow failed: new_pages=%d, max_pages=%d", new_pages, self.max_pages())
            return None
        new_size = new_pages * self.kind.page_size()
        if new_size > self.kind.max_size():
            return None
        if new_size > len(self.data):
            self.data.extend(bytes(new_size - len(self.data)))
        else:
            del self.data[new_size:]
        self.page_count = new_pages
        return current