"""Validated module representation shared by the parser and the runtime."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Union

from tinywasm.instructions import ConstInstruction, Instruction
from tinywasm.values import ValType

_MEM_PAGE_SIZE = 65536
_MAX_MEMORY_SIZE = 4294967296


def _set(obj: object, name: str, value: object) -> None:
    object.__setattr__(obj, name, value)


class ExternalKind(Enum):
    """The kind of an importable or exportable item."""

    Func = "func"
    Table = "table"
    Memory = "memory"
    Global = "global"


@dataclass(frozen=True)
class ExternVal:
    """An external value: a kind and an address in the store."""

    kind: ExternalKind
    addr: int


@dataclass(frozen=True)
class FuncType:
    """The signature of a function."""

    params: tuple[ValType, ...] = ()
    results: tuple[ValType, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "params", tuple(self.params))
        _set(self, "results", tuple(self.results))


@dataclass(frozen=True)
class ValueCounts:
    """How many values of each storage width a list of types holds."""

    c32: int = 0
    c64: int = 0
    c128: int = 0
    cref: int = 0

    @classmethod
    def from_types(cls, types: Iterable[ValType]) -> ValueCounts:
        """Count the types by the width of their storage slot."""
        c32 = c64 = c128 = cref = 0
        for ty in types:
            if ty in (ValType.I32, ValType.F32):
                c32 += 1
            elif ty in (ValType.I64, ValType.F64):
                c64 += 1
            elif ty is ValType.V128:
                c128 += 1
            elif ty.is_ref:
                cref += 1
            else:
                raise TypeError(f"not a value type: {ty!r}")
        return cls(c32, c64, c128, cref)


@dataclass(frozen=True)
class WasmFunctionData:
    """Side data of a function, such as its 128-bit constants."""

    v128_constants: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "v128_constants", tuple(self.v128_constants))


@dataclass(frozen=True)
class WasmFunction:
    """A validated function body with its locals and signature."""

    instructions: tuple[Instruction, ...] = ()
    data: WasmFunctionData = field(default_factory=WasmFunctionData)
    locals: ValueCounts = field(default_factory=ValueCounts)
    params: ValueCounts = field(default_factory=ValueCounts)
    ty: FuncType = field(default_factory=FuncType)

    def __post_init__(self) -> None:
        _set(self, "instructions", tuple(self.instructions))


@dataclass(frozen=True)
class Export:
    """An exported item: its name, kind and index."""

    name: str
    kind: ExternalKind
    index: int


@dataclass(frozen=True)
class GlobalType:
    """The type of a global and whether it may change."""

    mutable: bool
    ty: ValType


@dataclass(frozen=True)
class Global:
    """A global definition with its initialiser."""

    ty: GlobalType
    init: ConstInstruction


@dataclass(frozen=True)
class TableType:
    """The element type and limits of a table."""

    element_type: ValType
    size_initial: int
    size_max: Optional[int] = None

    @classmethod
    def empty(cls) -> TableType:
        """An empty, unbounded function table."""
        return cls(ValType.RefFunc, 0, None)


class MemoryArch(Enum):
    """The address width of a memory."""

    I32 = "i32"
    I64 = "i64"


class MemoryType:
    """The architecture, limits and page size of a memory."""

    __slots__ = ("arch", "page_count_initial", "_page_count_max", "_page_size")

    def __init__(
        self,
        arch: MemoryArch = MemoryArch.I32,
        page_count_initial: int = 0,
        page_count_max: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> None:
        if page_size is not None and page_size <= 0:
            raise ValueError(f"page size must be positive, got {page_size}")
        if page_count_initial < 0 or (page_count_max is not None and page_count_max < 0):
            raise ValueError("page counts must not be negative")
        self.arch = arch
        self.page_count_initial = page_count_initial
        self._page_count_max = page_count_max
        self._page_size = page_size

    @property
    def declared_page_count_max(self) -> Optional[int]:
        """The maximum page count as declared, if any."""
        return self._page_count_max

    @property
    def declared_page_size(self) -> Optional[int]:
        """The custom page size as declared, if any."""
        return self._page_size

    def page_count_max(self) -> int:
        """The maximum number of pages, bounded by the address space."""
        if self._page_count_max is not None:
            return self._page_count_max
        return _MAX_MEMORY_SIZE // self.page_size()

    def page_size(self) -> int:
        """The size of one page in bytes."""
        return _MEM_PAGE_SIZE if self._page_size is None else self._page_size

    def initial_size(self) -> int:
        """The initial size in bytes."""
        return self.page_count_initial * self.page_size()

    def max_size(self) -> int:
        """The maximum size in bytes."""
        return self.page_count_max() * self.page_size()

    def _key(self) -> tuple:
        return (self.arch, self.page_count_initial, self._page_count_max, self._page_size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MemoryType):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return (
            f"MemoryType(arch={self.arch}, page_count_initial={self.page_count_initial}, "
            f"page_count_max={self._page_count_max}, page_size={self._page_size})"
        )


ImportKind = Union[int, TableType, MemoryType, GlobalType]


@dataclass(frozen=True)
class Import:
    """An import; its kind is a type address for functions, else the item's type."""

    module: str
    name: str
    kind: ImportKind

    def __post_init__(self) -> None:
        self.external_kind()

    def external_kind(self) -> ExternalKind:
        """The kind of item this import provides."""
        kind = self.kind
        if isinstance(kind, bool):
            raise TypeError(f"invalid import kind: {kind!r}")
        if isinstance(kind, int):
            return ExternalKind.Func
        if isinstance(kind, TableType):
            return ExternalKind.Table
        if isinstance(kind, MemoryType):
            return ExternalKind.Memory
        if isinstance(kind, GlobalType):
            return ExternalKind.Global
        raise TypeError(f"invalid import kind: {kind!r}")


@dataclass(frozen=True)
class Data:
    """A data segment; active when it has an offset into memory `mem`."""

    data: bytes
    range: range
    mem: int = 0
    offset: Optional[ConstInstruction] = None

    def __post_init__(self) -> None:
        _set(self, "data", bytes(self.data))

    def is_active(self) -> bool:
        """Whether the segment is copied into memory on instantiation."""
        return self.offset is not None


@dataclass(frozen=True)
class ElementKind:
    """How an element segment is used: passive, active or declared."""

    class Mode(Enum):
        PASSIVE = "passive"
        ACTIVE = "active"
        DECLARED = "declared"

    mode: ElementKind.Mode
    table: int = 0
    offset: Optional[ConstInstruction] = None

    def __post_init__(self) -> None:
        if not isinstance(self.mode, ElementKind.Mode):
            raise TypeError(f"invalid element mode: {self.mode!r}")
        if (self.mode is ElementKind.Mode.ACTIVE) != (self.offset is not None):
            raise ValueError("an offset is given exactly for active segments")

    @classmethod
    def passive(cls) -> ElementKind:
        return cls(cls.Mode.PASSIVE)

    @classmethod
    def declared(cls) -> ElementKind:
        return cls(cls.Mode.DECLARED)

    @classmethod
    def active(cls, table: int, offset: ConstInstruction) -> ElementKind:
        return cls(cls.Mode.ACTIVE, table, offset)


@dataclass(frozen=True)
class ElementItem:
    """An element: either a function address or a constant expression."""

    func: Optional[int] = None
    expr: Optional[ConstInstruction] = None

    def __post_init__(self) -> None:
        if (self.func is None) == (self.expr is None):
            raise ValueError("an element item holds exactly one of func and expr")


@dataclass(frozen=True)
class Element:
    """An element segment."""

    kind: ElementKind
    items: tuple[ElementItem, ...]
    range: range
    ty: ValType

    def __post_init__(self) -> None:
        _set(self, "items", tuple(self.items))


_SEQUENCE_FIELDS = (
    "funcs",
    "func_types",
    "exports",
    "globals",
    "table_types",
    "memory_types",
    "imports",
    "data",
    "elements",
)


@dataclass
class TinyWasmModule:
    """A validated module, ready to be instantiated."""

    start_func: Optional[int] = None
    funcs: tuple[WasmFunction, ...] = ()
    func_types: tuple[FuncType, ...] = ()
    exports: tuple[Export, ...] = ()
    globals: tuple[Global, ...] = ()
    table_types: tuple[TableType, ...] = ()
    memory_types: tuple[MemoryType, ...] = ()
    imports: tuple[Import, ...] = ()
    data: tuple[Data, ...] = ()
    elements: tuple[Element, ...] = ()

    def __post_init__(self) -> None:
        for name in _SEQUENCE_FIELDS:
            setattr(self, name, tuple(getattr(self, name)))