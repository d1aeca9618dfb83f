"""Errors raised by the runtime, including traps."""

from __future__ import annotations


class TinyWasmError(Exception):
    """Base class of all runtime errors."""


class UnsupportedFeature(TinyWasmError):
    """Raised when a module needs a feature the runtime does not provide."""

    def __init__(self, feature: str) -> None:
        self.feature = feature
        super().__init__(f"unsupported feature: {feature}")


class Trap(TinyWasmError):
    """A trap: execution stopped abnormally."""

    def __init__(self, message: str, detail: str = "") -> None:
        self.message = message
        super().__init__(f"{message}: {detail}" if detail else message)


class _OutOfBounds(Trap):
    _MESSAGE = ""

    def __init__(self, offset: int, length: int, max: int) -> None:
        self.offset = offset
        self.length = length
        self.max = max
        super().__init__(self._MESSAGE, f"offset={offset}, len={length}, max={max}")


class MemoryOutOfBounds(_OutOfBounds):
    """An access outside the bounds of a memory."""

    _MESSAGE = "out of bounds memory access"


class TableOutOfBounds(_OutOfBounds):
    """An access outside the bounds of a table."""

    _MESSAGE = "out of bounds table access"