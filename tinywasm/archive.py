"""The twasm archive format: a magic header followed by a serialised module."""

from __future__ import annotations

import struct
from dataclasses import fields
from enum import Enum
from typing import Callable, Iterator

from tinywasm.instructions import (
    ConstInstruction,
    ConstOp,
    Instruction,
    MemoryArg,
    Opcode,
    RelaxedSimd,
    SimdInstruction,
    SimdOpcode,
)
from tinywasm.module import (
    Data,
    Element,
    ElementItem,
    ElementKind,
    Export,
    ExternalKind,
    FuncType,
    Global,
    GlobalType,
    Import,
    MemoryArch,
    MemoryType,
    TableType,
    TinyWasmModule,
    ValueCounts,
    WasmFunction,
    WasmFunctionData,
)
from tinywasm.values import ValType

_MAGIC_PREFIX = b"TWAS"
_VERSION = b"02"
_MAGIC = _MAGIC_PREFIX + _VERSION + bytes(10)


class TwasmErrorKind(Enum):
    """Why an archive could not be read."""

    InvalidMagic = "invalid magic number"
    InvalidVersion = "invalid version"
    InvalidPadding = "invalid padding"
    InvalidArchive = "invalid archive"


class TwasmError(ValueError):
    """Raised when bytes are not a valid twasm archive."""

    def __init__(self, kind: TwasmErrorKind) -> None:
        self.kind = kind
        super().__init__(f"Invalid twasm: {kind.value}")


_TAG_NONE, _TAG_FALSE, _TAG_TRUE, _TAG_INT, _TAG_FLOAT = range(5)
_TAG_STR, _TAG_BYTES, _TAG_TUPLE, _TAG_RANGE, _TAG_ENUM, _TAG_OBJECT = range(5, 11)

_FLOAT = struct.Struct("<d")

_ENUMS: dict[str, type[Enum]] = {
    cls.__qualname__: cls
    for cls in (
        ValType,
        ConstOp,
        Opcode,
        SimdOpcode,
        RelaxedSimd,
        ExternalKind,
        MemoryArch,
        ElementKind.Mode,
    )
}

_Codec = tuple[type, Callable[[object], tuple], Callable[[tuple], object]]


def _dataclass_codec(cls: type) -> _Codec:
    names = [f.name for f in fields(cls) if f.init]
    return cls, (lambda obj: tuple(getattr(obj, name) for name in names)), (lambda values: cls(*values))


_OBJECTS: dict[str, _Codec] = {
    cls.__qualname__: _dataclass_codec(cls)
    for cls in (
        MemoryArg,
        ConstInstruction,
        Instruction,
        SimdInstruction,
        FuncType,
        ValueCounts,
        WasmFunctionData,
        WasmFunction,
        Export,
        GlobalType,
        Global,
        TableType,
        Import,
        Data,
        ElementKind,
        ElementItem,
        Element,
        TinyWasmModule,
    )
}
_OBJECTS[MemoryType.__qualname__] = (
    MemoryType,
    lambda m: (m.arch, m.page_count_initial, m.declared_page_count_max, m.declared_page_size),
    lambda values: MemoryType(*values),
)


def _uleb(n: int) -> bytes:
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _text(value: str) -> bytes:
    raw = value.encode("utf-8")
    return _uleb(len(raw)) + raw


def _encode(value: object) -> Iterator[bytes]:
    if value is None:
        yield bytes((_TAG_NONE,))
    elif isinstance(value, bool):
        yield bytes((_TAG_TRUE if value else _TAG_FALSE,))
    elif isinstance(value, Enum):
        key = type(value).__qualname__
        if _ENUMS.get(key) is not type(value):
            raise TypeError(f"cannot archive enum {value!r}")
        yield bytes((_TAG_ENUM,)) + _text(key) + _text(value.name)
    elif isinstance(value, int):
        raw = value.to_bytes(value.bit_length() // 8 + 1, "little", signed=True)
        yield bytes((_TAG_INT,)) + _uleb(len(raw)) + raw
    elif isinstance(value, float):
        yield bytes((_TAG_FLOAT,)) + _FLOAT.pack(value)
    elif isinstance(value, str):
        yield bytes((_TAG_STR,)) + _text(value)
    elif isinstance(value, (bytes, bytearray)):
        yield bytes((_TAG_BYTES,)) + _uleb(len(value)) + bytes(value)
    elif isinstance(value, (tuple, list)):
        yield bytes((_TAG_TUPLE,)) + _uleb(len(value))
        for item in value:
            yield from _encode(item)
    elif isinstance(value, range):
        yield bytes((_TAG_RANGE,))
        for part in (value.start, value.stop, value.step):
            yield from _encode(part)
    else:
        key = type(value).__qualname__
        codec = _OBJECTS.get(key)
        if codec is None or codec[0] is not type(value):
            raise TypeError(f"cannot archive {value!r}")
        yield bytes((_TAG_OBJECT,)) + _text(key)
        yield from _encode(codec[1](value))


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def exhausted(self) -> bool:
        return self._pos == len(self._data)

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise ValueError("archive is truncated")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def uleb(self) -> int:
        result = shift = 0
        while True:
            byte = self.take(1)[0]
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7
            if shift > 63:
                raise ValueError("length is too long")

    def text(self) -> str:
        return self.take(self.uleb()).decode("utf-8")

    def value(self) -> object:
        tag = self.take(1)[0]
        if tag == _TAG_NONE:
            return None
        if tag in (_TAG_FALSE, _TAG_TRUE):
            return tag == _TAG_TRUE
        if tag == _TAG_INT:
            return int.from_bytes(self.take(self.uleb()), "little", signed=True)
        if tag == _TAG_FLOAT:
            return _FLOAT.unpack(self.take(_FLOAT.size))[0]
        if tag == _TAG_STR:
            return self.text()
        if tag == _TAG_BYTES:
            return self.take(self.uleb())
        if tag == _TAG_TUPLE:
            return tuple(self.value() for _ in range(self.uleb()))
        if tag == _TAG_RANGE:
            return range(self.value(), self.value(), self.value())
        if tag == _TAG_ENUM:
            cls = _ENUMS[self.text()]
            return cls[self.text()]
        if tag == _TAG_OBJECT:
            _, _, build = _OBJECTS[self.text()]
            values = self.value()
            if not isinstance(values, tuple):
                raise ValueError("object fields must be a tuple")
            return build(values)
        raise ValueError(f"unknown tag {tag}")


def _validate_magic(data: bytes) -> int:
    prefix_end = len(_MAGIC_PREFIX)
    version_end = prefix_end + len(_VERSION)
    if len(data) < len(_MAGIC) or data[:prefix_end] != _MAGIC_PREFIX:
        raise TwasmError(TwasmErrorKind.InvalidMagic)
    if data[prefix_end:version_end] != _VERSION:
        raise TwasmError(TwasmErrorKind.InvalidVersion)
    if data[version_end : len(_MAGIC)] != bytes(len(_MAGIC) - version_end):
        raise TwasmError(TwasmErrorKind.InvalidPadding)
    return len(_MAGIC)


def serialize_twasm(module: TinyWasmModule) -> bytes:
    """Serialise a module into a twasm archive."""
    if not isinstance(module, TinyWasmModule):
        raise TypeError(f"expected a TinyWasmModule, got {module!r}")
    return _MAGIC + b"".join(_encode(module))


def from_twasm(data: bytes) -> TinyWasmModule:
    """Read a module back from a twasm archive."""
    data = bytes(data)
    reader = _Reader(data[_validate_magic(data) :])
    try:
        module = reader.value()
    except (ValueError, TypeError, KeyError, IndexError, struct.error, RecursionError, OverflowError) as exc:
        raise TwasmError(TwasmErrorKind.InvalidArchive) from exc
    if not isinstance(module, TinyWasmModule) or not reader.exhausted:
        raise TwasmError(TwasmErrorKind.InvalidArchive)
    return module