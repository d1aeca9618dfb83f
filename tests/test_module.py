import pytest
from hypothesis import given
from hypothesis import strategies as st

from tinywasm.instructions import ConstInstruction, ConstOp
from tinywasm.module import (
    Data,
    Element,
    ElementItem,
    ElementKind,
    Export,
    ExternalKind,
    ExternVal,
    FuncType,
    GlobalType,
    Import,
    MemoryArch,
    MemoryType,
    TableType,
    TinyWasmModule,
    ValueCounts,
    WasmFunction,
)
from tinywasm.values import ValType

OFFSET = ConstInstruction(ConstOp.I32Const, 0)


def test_table_type_empty():
    assert TableType.empty() == TableType(ValType.RefFunc, 0, None)


def test_memory_type_default_page_size():
    mt = MemoryType(MemoryArch.I32, 1)
    assert mt.page_size() == 65536
    assert mt.max_size() == 4294967296


def test_memory_type_custom_page_size_unbounded():
    mt = MemoryType(MemoryArch.I32, 1, None, 1)
    assert mt.page_count_max() == 4294967296


def test_memory_type_declared_limits():
    mt = MemoryType(MemoryArch.I32, 1, 2, 1)
    assert mt.page_count_max() == 2
    assert mt.page_size() == 1
    assert mt.max_size() == mt.page_count_max() * mt.page_size()
    assert mt.declared_page_count_max == 2
    assert mt.declared_page_size == 1


def test_memory_type_equality():
    assert MemoryType(MemoryArch.I32, 1, 2) == MemoryType(MemoryArch.I32, 1, 2)
    assert MemoryType(MemoryArch.I32, 1, 2) != MemoryType(MemoryArch.I64, 1, 2)


def test_memory_type_rejects_zero_page_size():
    with pytest.raises(ValueError):
        MemoryType(MemoryArch.I32, 1, None, 0)


@given(st.integers(0, 1000), st.one_of(st.none(), st.integers(1, 1 << 16)))
def test_initial_size_is_pages_times_page_size(pages, page_size):
    mt = MemoryType(MemoryArch.I32, pages, None, page_size)
    assert mt.initial_size() == pages * mt.page_size()


@given(st.lists(st.sampled_from(list(ValType))))
def test_value_counts_sum_to_length(types):
    counts = ValueCounts.from_types(types)
    assert counts.c32 + counts.c64 + counts.c128 + counts.cref == len(types)


@given(st.integers(0, 50))
def test_value_counts_by_width(n):
    assert ValueCounts.from_types([ValType.I32] * n + [ValType.F32] * n).c32 == 2 * n
    assert ValueCounts.from_types([ValType.RefExtern] * n).cref == n
    assert ValueCounts.from_types([ValType.V128] * n).c128 == n


def test_extern_val_kind():
    val = ExternVal(ExternalKind.Memory, 3)
    assert val.kind is ExternalKind.Memory
    assert val.addr == 3


@pytest.mark.parametrize(
    "kind, expected",
    [
        (0, ExternalKind.Func),
        (TableType.empty(), ExternalKind.Table),
        (MemoryType(MemoryArch.I32, 1), ExternalKind.Memory),
        (GlobalType(False, ValType.I32), ExternalKind.Global),
    ],
)
def test_import_external_kind(kind, expected):
    assert Import("env", "x", kind).external_kind() is expected


def test_import_rejects_unknown_kind():
    with pytest.raises(TypeError):
        Import("env", "x", "memory")


def test_data_is_active():
    assert Data(b"ab", range(0, 2), 0, OFFSET).is_active() is True
    assert Data(b"ab", range(0, 2)).is_active() is False


def test_data_normalises_bytes():
    assert Data(bytearray(b"xy"), range(0, 2)).data == b"xy"


def test_element_kind_requires_offset_only_when_active():
    assert ElementKind.active(0, OFFSET).mode is ElementKind.Mode.ACTIVE
    with pytest.raises(ValueError):
        ElementKind(ElementKind.Mode.ACTIVE)
    with pytest.raises(ValueError):
        ElementKind(ElementKind.Mode.PASSIVE, 0, OFFSET)


def test_element_item_holds_exactly_one():
    with pytest.raises(ValueError):
        ElementItem()
    with pytest.raises(ValueError):
        ElementItem(func=1, expr=OFFSET)
    assert ElementItem(func=1).func == 1


def test_element_items_become_tuple():
    item = ElementItem(func=0)
    element = Element(ElementKind.passive(), [item], range(0, 1), ValType.RefFunc)
    assert element.items == (item,)


def test_module_sequences_become_tuples():
    export = Export("add", ExternalKind.Func, 0)
    module = TinyWasmModule(exports=[export], funcs=[WasmFunction()])
    assert module.exports == (export,)
    assert module.funcs == (WasmFunction(),)


def test_default_modules_are_equal():
    assert TinyWasmModule() == TinyWasmModule()
    assert TinyWasmModule(start_func=0) != TinyWasmModule()


def test_func_type_tuples():
    ft = FuncType([ValType.I32, ValType.I32], [ValType.I32])
    assert ft == FuncType((ValType.I32, ValType.I32), (ValType.I32,))