import pytest

from tinywasm.errors import TableOutOfBounds
from tinywasm.module import TableType
from tinywasm.table import MAX_TABLE_SIZE, TableInstance
from tinywasm.values import ValType, WasmValue


def dummy_table_type():
    return TableType(ValType.RefFunc, 10, 20)


def test_table_instance_creation():
    kind = dummy_table_type()
    table = TableInstance(kind, 0)
    assert table.size() == kind.size_initial


def test_get_wasm_val():
    table = TableInstance(dummy_table_type(), 0)
    table.set(0, 0)
    table.set(1, None)
    assert table.get_wasm_val(0) == WasmValue.ref_func(0)
    assert table.get_wasm_val(1) == WasmValue.ref_null(ValType.RefFunc)
    with pytest.raises(TableOutOfBounds):
        table.get_wasm_val(999)


def test_set_and_get():
    table = TableInstance(dummy_table_type(), 0)
    table.set(0, 1)
    assert table.get(0) == 1


def test_table_init():
    table = TableInstance(dummy_table_type(), 0)
    table.init(0, [0] * 5)
    for i in range(5):
        assert table.get(i) is not None and table.get(i) == 0
    assert table.get(5) is None


def test_init_out_of_bounds():
    table = TableInstance(dummy_table_type(), 0)
    with pytest.raises(TableOutOfBounds):
        table.init(8, [1, 2, 3])
    with pytest.raises(TableOutOfBounds):
        table.init(-1, [1])


def test_set_out_of_bounds():
    table = TableInstance(dummy_table_type(), 0)
    with pytest.raises(TableOutOfBounds):
        table.set(10, 1)


def test_extern_table_values():
    table = TableInstance(TableType(ValType.RefExtern, 2, None), 0)
    table.set(0, 7)
    assert table.get_wasm_val(0) == WasmValue.ref_extern(7)
    assert table.get_wasm_val(1) == WasmValue.ref_null(ValType.RefExtern)


def test_fill_resolves_function_addresses():
    table = TableInstance(dummy_table_type(), 0)
    func_addrs = [7, 8]
    table.fill(func_addrs, 2, 3, 1)
    assert table.load(2, 3) == [8, 8, 8]
    assert table.get(1) is None


def test_fill_out_of_bounds():
    table = TableInstance(dummy_table_type(), 0)
    with pytest.raises(TableOutOfBounds):
        table.fill([0], 9, 2, None)


def test_copy_within_overlapping():
    table = TableInstance(dummy_table_type(), 0)
    table.copy_from_slice(0, [1, 2, 3])
    table.copy_within(1, 0, 3)
    assert table.load(0, 4) == [1, 1, 2, 3]


def test_grow_to_limit():
    table = TableInstance(dummy_table_type(), 0)
    table.grow(10, 4)
    assert table.size() == 20
    assert table.get(19) == 4
    with pytest.raises(TableOutOfBounds):
        table.grow(1, None)
    with pytest.raises(TableOutOfBounds):
        table.grow(-1, None)


def test_grow_unbounded_uses_default_limit():
    table = TableInstance(TableType.empty(), 0)
    with pytest.raises(TableOutOfBounds):
        table.grow(MAX_TABLE_SIZE + 1, None)
    assert table.size() == 0