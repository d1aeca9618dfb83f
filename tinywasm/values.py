"""WebAssembly value types and runtime values."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

Number = Union[int, float]

_F32 = struct.Struct("<f")
_U32 = struct.Struct("<I")
_F64 = struct.Struct("<d")
_U64 = struct.Struct("<Q")


class ValType(Enum):
    """Type of a WebAssembly value."""

    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"
    V128 = "v128"
    RefFunc = "funcref"
    RefExtern = "externref"

    @property
    def is_ref(self) -> bool:
        """Whether this is a reference type."""
        return self in (ValType.RefFunc, ValType.RefExtern)

    @property
    def is_float(self) -> bool:
        """Whether this is a floating point type."""
        return self in (ValType.F32, ValType.F64)

    def default_value(self) -> WasmValue:
        """The zero value of this type."""
        return WasmValue.default_for(self)

    def is_simd(self) -> bool:
        """Whether this is the 128-bit vector type."""
        return self is ValType.V128


_INT_BOUNDS = {
    ValType.I32: (-(2**31), 2**31 - 1),
    ValType.I64: (-(2**63), 2**63 - 1),
    ValType.V128: (0, 2**128 - 1),
    ValType.RefFunc: (0, 2**32 - 1),
    ValType.RefExtern: (0, 2**32 - 1),
}


def _round_f32(value: float) -> float:
    try:
        return _F32.unpack(_F32.pack(value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _float_bits(ty: ValType, value: float) -> int:
    if ty is ValType.F32:
        return _U32.unpack(_F32.pack(value))[0]
    return _U64.unpack(_F64.pack(value))[0]


def _normalize(ty: ValType, value: object) -> Optional[Number]:
    if not isinstance(ty, ValType):
        raise TypeError(f"expected a ValType, got {ty!r}")
    if value is None:
        if not ty.is_ref:
            raise TypeError(f"{ty.name} values cannot be null")
        return None
    if ty.is_float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{ty.name} expects a number, got {value!r}")
        value = float(value)
        return _round_f32(value) if ty is ValType.F32 else value
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{ty.name} expects an integer, got {value!r}")
    low, high = _INT_BOUNDS[ty]
    if not low <= value <= high:
        raise ValueError(f"{value} is out of range for {ty.name}")
    return value


def _format_float(ty: ValType, value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return "-0" if value == 0 and math.copysign(1.0, value) < 0 else str(int(value))
    if ty is ValType.F32:
        for precision in range(1, 10):
            text = f"{value:.{precision}g}"
            if _round_f32(float(text)) == value:
                return text
    return repr(value)


@dataclass(frozen=True, eq=False)
class WasmValue:
    """A WebAssembly value; a null reference has a reference type and no value."""

    ty: ValType
    value: Optional[Number] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _normalize(self.ty, self.value))

    @classmethod
    def i32(cls, value: int) -> WasmValue:
        return cls(ValType.I32, value)

    @classmethod
    def i64(cls, value: int) -> WasmValue:
        return cls(ValType.I64, value)

    @classmethod
    def f32(cls, value: float) -> WasmValue:
        return cls(ValType.F32, value)

    @classmethod
    def f64(cls, value: float) -> WasmValue:
        return cls(ValType.F64, value)

    @classmethod
    def v128(cls, value: int) -> WasmValue:
        return cls(ValType.V128, value)

    @classmethod
    def ref_extern(cls, addr: int) -> WasmValue:
        return cls(ValType.RefExtern, addr)

    @classmethod
    def ref_func(cls, addr: int) -> WasmValue:
        return cls(ValType.RefFunc, addr)

    @classmethod
    def ref_null(cls, ty: ValType) -> WasmValue:
        if not ty.is_ref:
            raise TypeError(f"ref.null needs a reference type, got {ty.name}")
        return cls(ty, None)

    @classmethod
    def default_for(cls, ty: ValType) -> WasmValue:
        """The default (zero or null) value for a type."""
        if ty.is_ref:
            return cls.ref_null(ty)
        if ty.is_float:
            return cls(ty, 0.0)
        return cls(ty, 0)

    @property
    def is_null(self) -> bool:
        return self.value is None

    def val_type(self) -> ValType:
        """The type of this value."""
        return self.ty

    def eq_loose(self, other: WasmValue) -> bool:
        """Compare bitwise, treating any two NaNs as equal; vectors never match."""
        if self.ty is not other.ty or self.is_null != other.is_null:
            return False
        if self.ty is ValType.V128:
            return False
        if self.ty.is_float:
            if math.isnan(self.value) and math.isnan(other.value):
                return True
            return _float_bits(self.ty, self.value) == _float_bits(other.ty, other.value)
        return self.value == other.value

    def _get(self, ty: ValType) -> Optional[Number]:
        return self.value if self.ty is ty else None

    def as_i32(self) -> Optional[int]:
        return self._get(ValType.I32)

    def as_i64(self) -> Optional[int]:
        return self._get(ValType.I64)

    def as_f32(self) -> Optional[float]:
        return self._get(ValType.F32)

    def as_f64(self) -> Optional[float]:
        return self._get(ValType.F64)

    def as_v128(self) -> Optional[int]:
        return self._get(ValType.V128)

    def as_ref_extern(self) -> Optional[int]:
        return self._get(ValType.RefExtern)

    def as_ref_func(self) -> Optional[int]:
        return self._get(ValType.RefFunc)

    def as_ref_null(self) -> Optional[ValType]:
        return self.ty if self.is_null else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WasmValue):
            return NotImplemented
        return self.ty is other.ty and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.ty, self.value))

    def __repr__(self) -> str:
        if self.is_null:
            return f"ref.null({self.ty.name})"
        if self.ty is ValType.RefExtern:
            return f"ref.extern({self.value})"
        if self.ty is ValType.RefFunc:
            return f"ref.func({self.value})"
        if self.ty.is_float:
            return f"{self.ty.value}({_format_float(self.ty, self.value)})"
        return f"{self.ty.value}({self.value})"