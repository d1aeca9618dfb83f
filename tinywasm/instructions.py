"""Internal bytecode instructions of the interpreter."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from tinywasm.values import ValType, WasmValue


@dataclass(frozen=True)
class MemoryArg:
    """Memory immediate: a byte offset and the memory it addresses."""

    offset: int
    mem_addr: int = 0

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<QI")

    def __post_init__(self) -> None:
        if not 0 <= self.offset < 2**64:
            raise ValueError(f"offset {self.offset} does not fit in 64 bits")
        if not 0 <= self.mem_addr < 2**32:
            raise ValueError(f"memory address {self.mem_addr} does not fit in 32 bits")

    def to_bytes(self) -> bytes:
        """The 12-byte little-endian encoding."""
        return self._LAYOUT.pack(self.offset, self.mem_addr)

    @classmethod
    def from_bytes(cls, data: bytes) -> MemoryArg:
        if len(data) != cls._LAYOUT.size:
            raise ValueError(f"memory argument needs {cls._LAYOUT.size} bytes, got {len(data)}")
        offset, mem_addr = cls._LAYOUT.unpack(bytes(data))
        return cls(offset, mem_addr)


class ConstOp(Enum):
    """Operations allowed in constant expressions."""

    I32Const = "i32.const"
    I64Const = "i64.const"
    F32Const = "f32.const"
    F64Const = "f64.const"
    GlobalGet = "global.get"
    RefNull = "ref.null"
    RefFunc = "ref.func"


_CONST_TYPES = {
    ConstOp.I32Const: ValType.I32,
    ConstOp.I64Const: ValType.I64,
    ConstOp.F32Const: ValType.F32,
    ConstOp.F64Const: ValType.F64,
}


@dataclass(frozen=True)
class ConstInstruction:
    """A constant expression; the operand is a number, an address or a ValType."""

    op: ConstOp
    operand: Union[int, float, ValType]

    def __post_init__(self) -> None:
        if self.op is ConstOp.RefNull:
            if not isinstance(self.operand, ValType) or not self.operand.is_ref:
                raise TypeError("ref.null needs a reference type")
        elif self.op in _CONST_TYPES:
            value = WasmValue(_CONST_TYPES[self.op], self.operand).value
            object.__setattr__(self, "operand", value)
        elif isinstance(self.operand, bool) or not isinstance(self.operand, int) or not 0 <= self.operand < 2**32:
            raise ValueError(f"{self.op.value} needs a 32-bit address, got {self.operand!r}")


def const_instr(value: WasmValue) -> ConstInstruction:
    """The constant instruction producing a value."""
    if value.is_null:
        return ConstInstruction(ConstOp.RefNull, value.ty)
    for op, ty in _CONST_TYPES.items():
        if value.ty is ty:
            return ConstInstruction(op, value.value)
    if value.ty is ValType.RefFunc:
        return ConstInstruction(ConstOp.RefFunc, value.value)
    raise ValueError(f"no const instruction for {value!r}")


Opcode = Enum(
    "Opcode",
    """
    LocalCopy32 LocalCopy64 LocalCopy128 LocalCopyRef
    Unreachable Nop
    Block BlockWithType BlockWithFuncType
    Loop LoopWithType LoopWithFuncType
    If IfWithType IfWithFuncType
    Else EndBlockFrame Br BrIf BrTable BrLabel Return Call CallIndirect
    Drop32 Select32 Drop64 Select64 Drop128 Select128 DropRef SelectRef
    GlobalGet
    LocalGet32 LocalSet32 LocalTee32 GlobalSet32
    LocalGet64 LocalSet64 LocalTee64 GlobalSet64
    LocalGet128 LocalSet128 LocalTee128 GlobalSet128
    LocalGetRef LocalSetRef LocalTeeRef GlobalSetRef
    I32Load I64Load F32Load F64Load I32Load8S I32Load8U I32Load16S I32Load16U
    I64Load8S I64Load8U I64Load16S I64Load16U I64Load32S I64Load32U
    I32Store I64Store F32Store F64Store I32Store8 I32Store16 I64Store8 I64Store16 I64Store32
    MemorySize MemoryGrow
    I32Const I64Const F32Const F64Const
    RefNull RefFunc RefIsNull
    I32Eqz I32Eq I32Ne I32LtS I32LtU I32GtS I32GtU I32LeS I32LeU I32GeS I32GeU
    I64Eqz I64Eq I64Ne I64LtS I64LtU I64GtS I64GtU I64LeS I64LeU I64GeS I64GeU
    F32Eq F32Ne F32Lt F32Gt F32Le F32Ge
    F64Eq F64Ne F64Lt F64Gt F64Le F64Ge
    I32Clz I32Ctz I32Popcnt I32Add I32Sub I32Mul I32DivS I32DivU I32RemS I32RemU
    I64Clz I64Ctz I64Popcnt I64Add I64Sub I64Mul I64DivS I64DivU I64RemS I64RemU
    I32And I32Or I32Xor I32Shl I32ShrS I32ShrU I32Rotl I32Rotr
    I64And I64Or I64Xor I64Shl I64ShrS I64ShrU I64Rotl I64Rotr
    F32Abs F32Neg F32Ceil F32Floor F32Trunc F32Nearest F32Sqrt F32Add F32Sub F32Mul F32Div
    F32Min F32Max F32Copysign
    F64Abs F64Neg F64Ceil F64Floor F64Trunc F64Nearest F64Sqrt F64Add F64Sub F64Mul F64Div
    F64Min F64Max F64Copysign
    I32WrapI64 I32TruncF32S I32TruncF32U I32TruncF64S I32TruncF64U I32Extend8S I32Extend16S
    I64Extend8S I64Extend16S I64Extend32S I64ExtendI32S I64ExtendI32U
    I64TruncF32S I64TruncF32U I64TruncF64S I64TruncF64U
    F32ConvertI32S F32ConvertI32U F32ConvertI64S F32ConvertI64U F32DemoteF64
    F64ConvertI32S F64ConvertI32U F64ConvertI64S F64ConvertI64U F64PromoteF32
    I32ReinterpretF32 I64ReinterpretF64 F32ReinterpretI32 F64ReinterpretI64
    I32TruncSatF32S I32TruncSatF32U I32TruncSatF64S I32TruncSatF64U
    I64TruncSatF32S I64TruncSatF32U I64TruncSatF64S I64TruncSatF64U
    TableInit TableGet TableSet TableCopy TableGrow TableSize TableFill
    MemoryInit MemoryCopy MemoryFill DataDrop ElemDrop
    Simd
    """.split(),
    module=__name__,
    qualname="Opcode",
)
Opcode.__doc__ = "Opcodes of the internal bytecode."

SimdOpcode = Enum(
    "SimdOpcode",
    """
    V128Load V128Load8x8S V128Load8x8U V128Load16x4S V128Load16x4U V128Load32x2S V128Load32x2U
    V128Load8Splat V128Load16Splat V128Load32Splat V128Load64Splat
    V128Load8Lane V128Load16Lane V128Load32Lane V128Load64Lane
    V128Load32Zero V128Load64Zero
    V128Store V128Store8Lane V128Store16Lane V128Store32Lane V128Store64Lane
    I8x16Shuffle V128Const
    I8x16ExtractLaneS I8x16ExtractLaneU I8x16ReplaceLane
    I16x8ExtractLaneS I16x8ExtractLaneU I16x8ReplaceLane
    I32x4ExtractLane I32x4ReplaceLane I64x2ExtractLane I64x2ReplaceLane
    F32x4ExtractLane F32x4ReplaceLane F64x2ExtractLane F64x2ReplaceLane
    V128Not V128And V128AndNot V128Or V128Xor V128Bitselect V128AnyTrue
    I8x16Splat I8x16Swizzle I8x16Eq I8x16Ne I8x16LtS I8x16LtU I8x16GtS I8x16GtU
    I8x16LeS I8x16LeU I8x16GeS I8x16GeU
    I16x8Splat I16x8Eq I16x8Ne I16x8LtS I16x8LtU I16x8GtS I16x8GtU I16x8LeS I16x8LeU I16x8GeS I16x8GeU
    I32x4Splat I32x4Eq I32x4Ne I32x4LtS I32x4LtU I32x4GtS I32x4GtU I32x4LeS I32x4LeU I32x4GeS I32x4GeU
    I64x2Splat I64x2Eq I64x2Ne I64x2LtS I64x2GtS I64x2LeS I64x2GeS
    F32x4Splat F32x4Eq F32x4Ne F32x4Lt F32x4Gt F32x4Le F32x4Ge
    F64x2Splat F64x2Eq F64x2Ne F64x2Lt F64x2Gt F64x2Le F64x2Ge
    I8x16Abs I8x16Neg I8x16AllTrue I8x16Bitmask I8x16Shl I8x16ShrS I8x16ShrU I8x16Add I8x16Sub
    I8x16MinS I8x16MinU I8x16MaxS I8x16MaxU
    I16x8Abs I16x8Neg I16x8AllTrue I16x8Bitmask I16x8Shl I16x8ShrS I16x8ShrU I16x8Add I16x8Sub
    I16x8MinS I16x8MinU I16x8MaxS I16x8MaxU
    I32x4Abs I32x4Neg I32x4AllTrue I32x4Bitmask I32x4Shl I32x4ShrS I32x4ShrU I32x4Add I32x4Sub
    I32x4MinS I32x4MinU I32x4MaxS I32x4MaxU
    I64x2Abs I64x2Neg I64x2AllTrue I64x2Bitmask I64x2Shl I64x2ShrS I64x2ShrU I64x2Add I64x2Sub I64x2Mul
    I8x16NarrowI16x8S I8x16NarrowI16x8U I8x16AddSatS I8x16AddSatU I8x16SubSatS I8x16SubSatU I8x16AvgrU
    I16x8NarrowI32x4S I16x8NarrowI32x4U I16x8AddSatS I16x8AddSatU I16x8SubSatS I16x8SubSatU I16x8AvgrU
    I16x8ExtAddPairwiseI8x16S I16x8ExtAddPairwiseI8x16U I16x8Mul
    I32x4ExtAddPairwiseI16x8S I32x4ExtAddPairwiseI16x8U I32x4Mul
    I16x8ExtMulLowI8x16S I16x8ExtMulLowI8x16U I16x8ExtMulHighI8x16S I16x8ExtMulHighI8x16U
    I32x4ExtMulLowI16x8S I32x4ExtMulLowI16x8U I32x4ExtMulHighI16x8S I32x4ExtMulHighI16x8U
    I64x2ExtMulLowI32x4S I64x2ExtMulLowI32x4U I64x2ExtMulHighI32x4S I64x2ExtMulHighI32x4U
    I16x8ExtendLowI8x16S I16x8ExtendLowI8x16U I16x8ExtendHighI8x16S I16x8ExtendHighI8x16U
    I32x4ExtendLowI16x8S I32x4ExtendLowI16x8U I32x4ExtendHighI16x8S I32x4ExtendHighI16x8U
    I64x2ExtendLowI32x4S I64x2ExtendLowI32x4U I64x2ExtendHighI32x4S I64x2ExtendHighI32x4U
    I8x16Popcnt I16x8Q15MulrSatS I32x4DotI16x8S
    F32x4Ceil F32x4Floor F32x4Trunc F32x4Nearest F32x4Abs F32x4Neg F32x4Sqrt F32x4Add F32x4Sub
    F32x4Mul F32x4Div F32x4Min F32x4Max F32x4PMin F32x4PMax
    F64x2Ceil F64x2Floor F64x2Trunc F64x2Nearest F64x2Abs F64x2Neg F64x2Sqrt F64x2Add F64x2Sub
    F64x2Mul F64x2Div F64x2Min F64x2Max F64x2PMin F64x2PMax
    I32x4TruncSatF32x4S I32x4TruncSatF32x4U F32x4ConvertI32x4S F32x4ConvertI32x4U
    I32x4TruncSatF64x2SZero I32x4TruncSatF64x2UZero F64x2ConvertLowI32x4S F64x2ConvertLowI32x4U
    F32x4DemoteF64x2Zero F64x2PromoteLowF32x4
    """.split(),
    module=__name__,
    qualname="SimdOpcode",
)
SimdOpcode.__doc__ = "Opcodes of the SIMD instructions."

RelaxedSimd = Enum(
    "RelaxedSimd",
    """
    I8x16RelaxedSwizzle
    I32x4RelaxedTruncF32x4S I32x4RelaxedTruncF32x4U
    I32x4RelaxedTruncF64x2SZero I32x4RelaxedTruncF64x2UZero
    F32x4RelaxedMadd F32x4RelaxedNmadd F64x2RelaxedMadd F64x2RelaxedNmadd
    I8x16RelaxedLaneselect I16x8RelaxedLaneselect I32x4RelaxedLaneselect I64x2RelaxedLaneselect
    F32x4RelaxedMin F32x4RelaxedMax F64x2RelaxedMin F64x2RelaxedMax
    I16x8RelaxedQ15mulrS I16x8RelaxedDotI8x16I7x16S I32x4RelaxedDotI8x16I7x16AddS
    """.split(),
    module=__name__,
    qualname="RelaxedSimd",
)
RelaxedSimd.__doc__ = "Instructions of the relaxed SIMD proposal."


def _operand_table(*groups: tuple[int, str]) -> dict[str, int]:
    table: dict[str, int] = {}
    for count, names in groups:
        table.update(dict.fromkeys(names.split(), count))
    return table


_MEMORY_OPS = frozenset(
    """
    I32Load I64Load F32Load F64Load I32Load8S I32Load8U I32Load16S I32Load16U
    I64Load8S I64Load8U I64Load16S I64Load16U I64Load32S I64Load32U
    I32Store I64Store F32Store F64Store I32Store8 I32Store16 I64Store8 I64Store16 I64Store32
    """.split()
)

_OPCODE_OPERANDS = _operand_table(
    (
        1,
        " ".join(_MEMORY_OPS)
        + """
        Block Loop Else Br BrIf BrLabel Call GlobalGet
        LocalGet32 LocalSet32 LocalTee32 GlobalSet32 LocalGet64 LocalSet64 LocalTee64 GlobalSet64
        LocalGet128 LocalSet128 LocalTee128 GlobalSet128 LocalGetRef LocalSetRef LocalTeeRef GlobalSetRef
        MemorySize MemoryGrow I32Const I64Const F32Const F64Const RefNull RefFunc
        TableGet TableSet TableGrow TableSize TableFill MemoryFill DataDrop ElemDrop Simd
        """,
    ),
    (
        2,
        """
        LocalCopy32 LocalCopy64 LocalCopy128 LocalCopyRef
        BlockWithType BlockWithFuncType LoopWithType LoopWithFuncType If BrTable CallIndirect
        TableInit TableCopy MemoryInit MemoryCopy
        """,
    ),
    (3, "IfWithType IfWithFuncType"),
)

_SIMD_LANE_MEMORY_OPS = frozenset(
    """
    V128Load8Lane V128Load16Lane V128Load32Lane V128Load64Lane
    V128Store8Lane V128Store16Lane V128Store32Lane V128Store64Lane
    """.split()
)

_SIMD_MEMORY_OPS = _SIMD_LANE_MEMORY_OPS | frozenset(
    """
    V128Load V128Load8x8S V128Load8x8U V128Load16x4S V128Load16x4U V128Load32x2S V128Load32x2U
    V128Load8Splat V128Load16Splat V128Load32Splat V128Load64Splat V128Load32Zero V128Load64Zero V128Store
    """.split()
)

_SIMD_OPERANDS = _operand_table(
    (
        1,
        " ".join(_SIMD_MEMORY_OPS - _SIMD_LANE_MEMORY_OPS)
        + """
        I8x16Shuffle V128Const
        I8x16ExtractLaneS I8x16ExtractLaneU I8x16ReplaceLane
        I16x8ExtractLaneS I16x8ExtractLaneU I16x8ReplaceLane
        I32x4ExtractLane I32x4ReplaceLane I64x2ExtractLane I64x2ReplaceLane
        F32x4ExtractLane F32x4ReplaceLane F64x2ExtractLane F64x2ReplaceLane
        """,
    ),
    (2, " ".join(_SIMD_LANE_MEMORY_OPS)),
)


def _check_operands(name: str, args: tuple, expected: int, memory_op: bool) -> None:
    if len(args) != expected:
        raise ValueError(f"{name} takes {expected} operand(s), got {len(args)}")
    if memory_op and not isinstance(args[0], MemoryArg):
        raise TypeError(f"{name} needs a MemoryArg as its first operand")


@dataclass(frozen=True)
class SimdInstruction:
    """A SIMD instruction with its immediates."""

    op: SimdOpcode
    args: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        name = self.op.name
        _check_operands(name, self.args, _SIMD_OPERANDS.get(name, 0), name in _SIMD_MEMORY_OPS)


@dataclass(frozen=True)
class Instruction:
    """An instruction of the internal bytecode with its immediates."""

    op: Opcode
    args: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        name = self.op.name
        _check_operands(name, self.args, _OPCODE_OPERANDS.get(name, 0), name in _MEMORY_OPS)
        if self.op is Opcode.Simd and not isinstance(self.args[0], SimdInstruction):
            raise TypeError("Simd needs a SimdInstruction operand")

    @classmethod
    def simd(cls, instr: SimdInstruction) -> Instruction:
        """Wrap a SIMD instruction."""
        return cls(Opcode.Simd, (instr,))