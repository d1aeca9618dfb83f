import struct

import pytest
from hypothesis import given
from hypothesis import strategies as st

from tinywasm.errors import MemoryOutOfBounds
from tinywasm.memory import MemoryInstance
from tinywasm.module import MemoryArch, MemoryType


def create_test_memory():
    return MemoryInstance(MemoryType(MemoryArch.I32, 1, 2, None), 0)


def test_memory_store_and_load():
    memory = create_test_memory()
    data = bytes([1, 2, 3, 4])
    memory.store(0, len(data), data)
    assert memory.load(0, len(data)) == data


def test_memory_store_out_of_bounds():
    memory = create_test_memory()
    data = bytes([1, 2, 3, 4])
    with pytest.raises(MemoryOutOfBounds):
        memory.store(len(memory.data), len(data), data)


def test_memory_fill():
    memory = create_test_memory()
    memory.fill(0, 10, 42)
    assert bytes(memory.data[0:10]) == bytes([42] * 10)


def test_memory_fill_out_of_bounds():
    memory = create_test_memory()
    with pytest.raises(MemoryOutOfBounds):
        memory.fill(len(memory.data), 10, 42)


def test_memory_copy_within():
    memory = create_test_memory()
    memory.fill(0, 10, 1)
    memory.copy_within(10, 0, 10)
    assert bytes(memory.data[10:20]) == bytes([1] * 10)


def test_memory_copy_within_out_of_bounds():
    memory = create_test_memory()
    with pytest.raises(MemoryOutOfBounds):
        memory.copy_within(len(memory.data), 0, 10)


def test_memory_grow():
    memory = create_test_memory()
    original = memory.page_count
    assert memory.grow(1) == original
    assert memory.page_count == original + 1
    assert len(memory) == (original + 1) * memory.kind.page_size()


def test_memory_grow_out_of_bounds():
    memory = create_test_memory()
    assert memory.grow(memory.kind.max_size() + 1) is None


def test_memory_grow_max_pages():
    memory = create_test_memory()
    assert memory.grow(1) == 1
    assert memory.grow(1) is None


def test_memory_custom_page_size_out_of_bounds():
    memory = MemoryInstance(MemoryType(MemoryArch.I32, 1, 2, 1), 0)
    with pytest.raises(MemoryOutOfBounds):
        memory.store(0, 2, bytes([1, 2]))


def test_memory_custom_page_size_grow():
    memory = MemoryInstance(MemoryType(MemoryArch.I32, 1, 2, 1), 0)
    assert memory.grow(1) == 1
    memory.store(0, 2, bytes([1, 2]))
    assert memory.load(0, 2) == bytes([1, 2])


def test_out_of_bounds_reports_limits():
    memory = create_test_memory()
    with pytest.raises(MemoryOutOfBounds) as info:
        memory.load(len(memory) - 1, 4)
    assert info.value.offset == len(memory) - 1
    assert info.value.length == 4
    assert info.value.max == len(memory)


def test_load_as_round_trip():
    memory = create_test_memory()
    memory.copy_from_slice(8, struct.pack("<i", -5))
    assert memory.load_as(8, "i") == -5
    memory.copy_from_slice(16, (2**100).to_bytes(16, "little"))
    assert memory.load_as(16, "u128") == 2**100


def test_load_as_out_of_bounds():
    memory = create_test_memory()
    with pytest.raises(MemoryOutOfBounds):
        memory.load_as(len(memory) - 2, "<I")


def test_initial_pages_above_max_rejected():
    with pytest.raises(ValueError):
        MemoryInstance(MemoryType(MemoryArch.I32, 3, 2, None), 0)


def test_store_length_mismatch():
    memory = create_test_memory()
    with pytest.raises(ValueError):
        memory.store(0, 3, b"ab")


@given(st.binary(max_size=64), st.integers(min_value=0, max_value=65536 - 64))
def test_store_load_round_trip(data, addr):
    memory = create_test_memory()
    memory.store(addr, len(data), data)
    assert memory.load(addr, len(data)) == data