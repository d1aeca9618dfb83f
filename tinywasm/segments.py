"""Data, element, function and global instances held by a store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union

from tinywasm.module import ElementKind, GlobalType, WasmFunction
from tinywasm.values import WasmValue


@dataclass
class DataInstance:
    """A data segment; its bytes are None once dropped."""

    data: Optional[bytes]
    owner: int = 0

    def drop(self) -> None:
        """Release the segment's bytes."""
        self.data = None


@dataclass
class ElementInstance:
    """An element segment; its items are None once dropped."""

    kind: ElementKind
    owner: int = 0
    items: Optional[list[Optional[int]]] = None

    def __post_init__(self) -> None:
        if self.items is not None:
            self.items = list(self.items)

    def drop(self) -> None:
        """Release the segment's items."""
        self.items = None


@dataclass
class FunctionInstance:
    """A function, either a module function or a host callable, and its owner."""

    func: Union[WasmFunction, Callable[..., object]]
    owner: int = 0

    @classmethod
    def new_wasm(cls, func: WasmFunction, owner: int) -> FunctionInstance:
        """An instance of a function defined by a module."""
        if not isinstance(func, WasmFunction):
            raise TypeError(f"expected a WasmFunction, got {func!r}")
        return cls(func, owner)


@dataclass
class GlobalInstance:
    """A global with its current value."""

    ty: GlobalType
    value: WasmValue
    owner: int = 0