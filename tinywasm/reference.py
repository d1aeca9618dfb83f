"""Public handles for reading and writing a memory instance."""

from __future__ import annotations

from typing import Optional

from tinywasm.errors import TinyWasmError
from tinywasm.memory import MemoryInstance

_INVALID_CSTR = "Invalid C-style string"


class MemoryRef:
    """A read-only handle to a memory instance."""

    __slots__ = ("_memory",)

    def __init__(self, memory: MemoryInstance) -> None:
        self._memory = memory

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._memory)} bytes)"

    def load(self, offset: int, length: int) -> bytes:
        """Read `length` bytes starting at `offset`."""
        return self._memory.load(offset, length)

    def load_vec(self, offset: int, length: int) -> bytearray:
        """Read `length` bytes starting at `offset` into a new mutable buffer."""
        return bytearray(self.load(offset, length))

    def load_cstr(self, offset: int, length: int) -> bytes:
        """Read a nul-terminated string whose only nul byte is its last byte.

        The returned bytes do not include the terminator.
        """
        raw = self.load(offset, length)
        if not raw or raw[-1] != 0 or 0 in raw[:-1]:
            raise TinyWasmError(_INVALID_CSTR)
        return raw[:-1]

    def load_cstr_until_nul(self, offset: int, max_len: int) -> bytes:
        """Read up to `max_len` bytes and return those before the first nul byte."""
        raw = self.load(offset, max_len)
        end = raw.find(0)
        if end < 0:
            raise TinyWasmError(_INVALID_CSTR)
        return raw[:end]

    def load_string(self, offset: int, length: int) -> str:
        """Read `length` bytes and decode them as UTF-8."""
        raw = self.load(offset, length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TinyWasmError("Invalid UTF-8 string") from exc

    def load_js_string(self, offset: int, length: int) -> str:
        """Read `length` bytes as little-endian 16-bit code units, one character each.

        A trailing odd byte is ignored; surrogate code units are rejected.
        """
        raw = self.load(offset, length)
        units = (int.from_bytes(raw[i : i + 2], "little") for i in range(0, length - length % 2, 2))
        chars = []
        for unit in units:
            if 0xD800 <= unit <= 0xDFFF:
                raise TinyWasmError("Invalid UTF-16 string")
            chars.append(chr(unit))
        return "".join(chars)


class MemoryRefMut(MemoryRef):
    """A handle to a memory instance that may also change it."""

    __slots__ = ()

    def grow(self, delta_pages: int) -> Optional[int]:
        """Grow by `delta_pages` pages; return the old page count, or None on failure."""
        return self._memory.grow(delta_pages)

    def page_count(self) -> int:
        """The current size of the memory in pages."""
        return self._memory.page_count

    def copy_within(self, src: int, dst: int, length: int) -> None:
        """Copy `length` bytes from offset `dst` to offset `src`.

        The first argument is the destination of the underlying copy.
        """
        self._memory.copy_within(src, dst, length)

    def fill(self, offset: int, length: int, val: int) -> None:
        """Set `length` bytes starting at `offset` to `val`."""
        self._memory.fill(offset, length, val)

    def store(self, offset: int, length: int, data: bytes) -> None:
        """Write `length` bytes of `data` at `offset`."""
        self._memory.store(offset, length, data)