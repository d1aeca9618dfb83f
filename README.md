# tinywasm

The data model and runtime storage of a small WebAssembly interpreter:
values and value types, the internal instruction set, module descriptions,
a compact `.twasm` archive format, and the memory, table, global, data and
element instances that a store holds.

## Installation

```sh
pip install .
```

To run the tests:

```sh
pip install ".[test]"
pytest
```

## Values (`tinywasm.values`)

```python
from tinywasm.values import ValType, WasmValue

zero = ValType.I32.default_value()
assert zero.as_i32() == 0
assert WasmValue.default_for(ValType.RefFunc).as_ref_null() is ValType.RefFunc

x = WasmValue.f32(0.1)          # rounded to single precision
assert x.val_type() is ValType.F32
assert x.as_i32() is None       # accessors return None for other types
```

Values are checked on construction: integers must fit their type, floats
must be numbers, and only reference types may be null (`WasmValue.ref_null`).
`WasmValue.eq_loose` compares floats by their bits, except that any two NaNs
count as equal; it never reports two `v128` values as equal.

## Instructions (`tinywasm.instructions`)

```python
from tinywasm.instructions import Instruction, MemoryArg, Opcode, const_instr, ConstOp
from tinywasm.values import WasmValue

add = Instruction(Opcode.I32Add)
load = Instruction(Opcode.I32Load, (MemoryArg(offset=8),))
assert len(MemoryArg(8).to_bytes()) == 12

assert const_instr(WasmValue.i32(3)).op is ConstOp.I32Const
```

`Opcode`, `SimdOpcode` and `RelaxedSimd` enumerate the internal bytecode.
`Instruction` and `SimdInstruction` check the number of operands each opcode
takes, and that memory instructions get a `MemoryArg`; `Instruction.simd`
wraps a `SimdInstruction`.

## Modules (`tinywasm.module`)

`TinyWasmModule` describes a validated module: functions, function types,
exports, globals, table and memory types, imports, data and element
segments, and an optional start function. The parts are frozen dataclasses
(`WasmFunction`, `FuncType`, `Export`, `Global`, `GlobalType`, `TableType`,
`Import`, `Data`, `Element`, `ElementKind`, `ElementItem`, …).

`MemoryType` defaults to 64 KiB pages and, without a declared maximum, to as
many pages as fit in 4 GiB:

```python
from tinywasm.module import MemoryArch, MemoryType

mt = MemoryType(MemoryArch.I32, 1)
assert mt.page_size() == 65536
assert mt.page_count_max() == 65536
```

`ValueCounts.from_types` counts value types by storage width (32, 64, 128
bits and references).

## Archives (`tinywasm.archive`)

A `TinyWasmModule` can be written out to the `.twasm` format and read back:

```python
from tinywasm.module import TinyWasmModule
from tinywasm.archive import serialize_twasm, from_twasm, TwasmError

data = serialize_twasm(TinyWasmModule())
assert from_twasm(data) == TinyWasmModule()

try:
    from_twasm(b"not an archive")
except TwasmError as err:
    print(err)   # Invalid twasm: invalid magic number
```

Every archive starts with a 16-byte header: `TWAS`, the two-byte format
version `02`, and ten zero bytes. `TwasmError.kind` is a `TwasmErrorKind`:
`InvalidMagic`, `InvalidVersion`, `InvalidPadding` or `InvalidArchive`.

## Memory (`tinywasm.memory`)

```python
from tinywasm.module import MemoryArch, MemoryType
from tinywasm.memory import MemoryInstance
from tinywasm.errors import MemoryOutOfBounds

memory = MemoryInstance(MemoryType(MemoryArch.I32, 1, 2), owner=0)
memory.store(0, 4, b"\x01\x02\x03\x04")
assert memory.load(0, 4) == b"\x01\x02\x03\x04"
assert memory.load_as(0, "<I") == 0x04030201

assert memory.grow(1) == 1      # returns the previous page count
assert memory.grow(1) is None   # the maximum is two pages

try:
    memory.load(len(memory), 1)
except MemoryOutOfBounds as trap:
    print(trap)
```

`load_as` takes a `struct` format (little-endian unless stated) or
`"u128"`/`"i128"`. `fill`, `copy_from_slice` and `copy_within` raise
`MemoryOutOfBounds` when a range does not fit.

## Tables (`tinywasm.table`)

```python
from tinywasm.module import TableType
from tinywasm.values import ValType
from tinywasm.table import TableInstance

table = TableInstance(TableType(ValType.RefFunc, 10, 20), owner=0)
table.set(0, 7)
assert table.get_wasm_val(0).as_ref_func() == 7
assert table.get_wasm_val(1).as_ref_null() is ValType.RefFunc
assert table.size() == 10
```

Elements are addresses, or `None` while uninitialised. `fill` maps function
indices through the given function addresses for function tables; `grow`
stops at the declared maximum, or at 10,000,000 elements. Out-of-range
accesses raise `TableOutOfBounds`.

## Store instances (`tinywasm.segments`)

`DataInstance` and `ElementInstance` hold segment contents until `drop()`
sets them to `None`; `FunctionInstance.new_wasm` wraps a `WasmFunction`;
`GlobalInstance` holds a global's type and current `WasmValue`.

## Errors (`tinywasm.errors`)

All errors derive from `TinyWasmError`. `Trap` carries a `message`;
`MemoryOutOfBounds` and `TableOutOfBounds` are traps with `offset`,
`length` and `max`. `UnsupportedFeature` names a missing feature.

## Host access to memory (`tinywasm.reference`)

`MemoryRef` wraps a `MemoryInstance` for reading: `load`, `load_vec`,
`load_string` (UTF-8), `load_cstr` (exactly one nul, at the end),
`load_cstr_until_nul` and `load_js_string` (little-endian 16-bit units).
Invalid contents raise `TinyWasmError`. `MemoryRefMut` adds `grow`,
`page_count`, `fill`, `store` and `copy_within`; note that the first
argument of `copy_within` is the destination of the copy.

## What this package does not do

There is no parser for `.wasm` binaries or text, no validator, no
interpreter that executes `Instruction`s, and no store that instantiates
modules, links imports or calls exported functions. The package provides
the data structures and storage those parts work with.