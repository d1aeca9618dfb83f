import math

import pytest
from hypothesis import given, strategies as st

from tinywasm.values import ValType, WasmValue


@pytest.mark.parametrize(
    "ty, expected",
    [
        (ValType.I32, WasmValue.i32(0)),
        (ValType.I64, WasmValue.i64(0)),
        (ValType.F32, WasmValue.f32(0.0)),
        (ValType.F64, WasmValue.f64(0.0)),
        (ValType.V128, WasmValue.v128(0)),
        (ValType.RefFunc, WasmValue.ref_null(ValType.RefFunc)),
        (ValType.RefExtern, WasmValue.ref_null(ValType.RefExtern)),
    ],
)
def test_default_for(ty, expected):
    assert WasmValue.default_for(ty) == expected
    assert ty.default_value() == expected
    assert WasmValue.default_for(ty).val_type() is ty


@pytest.mark.parametrize(
    "ty, expected",
    [
        (ValType.I32, False),
        (ValType.I64, False),
        (ValType.F32, False),
        (ValType.F64, False),
        (ValType.V128, True),
        (ValType.RefFunc, False),
        (ValType.RefExtern, False),
    ],
)
def test_is_simd_only_for_v128(ty, expected):
    assert ty.is_simd() is expected


def test_nan_loose_equality():
    a = WasmValue.f32(math.nan)
    b = WasmValue.f32(math.nan)
    assert a.eq_loose(b)
    assert a != b
    assert WasmValue.f64(math.nan).eq_loose(WasmValue.f64(-math.nan))


def test_signed_zero_differs_loosely():
    assert WasmValue.f64(0.0) == WasmValue.f64(-0.0)
    assert not WasmValue.f64(0.0).eq_loose(WasmValue.f64(-0.0))
    assert not WasmValue.f32(0.0).eq_loose(WasmValue.f32(-0.0))


def test_eq_loose_mismatched_kinds():
    assert not WasmValue.i32(1).eq_loose(WasmValue.i64(1))
    assert not WasmValue.ref_func(0).eq_loose(WasmValue.ref_null(ValType.RefFunc))
    assert not WasmValue.ref_null(ValType.RefFunc).eq_loose(WasmValue.ref_null(ValType.RefExtern))
    assert WasmValue.ref_null(ValType.RefExtern).eq_loose(WasmValue.ref_null(ValType.RefExtern))
    assert WasmValue.ref_extern(7).eq_loose(WasmValue.ref_extern(7))


def test_v128_never_loosely_equal():
    assert not WasmValue.v128(5).eq_loose(WasmValue.v128(5))
    assert WasmValue.v128(5) == WasmValue.v128(5)


def test_accessors():
    v = WasmValue.i64(9)
    assert v.as_i64() == 9
    assert v.as_i32() is None
    assert v.as_f64() is None
    assert WasmValue.f64(2.5).as_f64() == 2.5
    assert WasmValue.f32(2.5).as_f32() == 2.5
    assert WasmValue.v128(3).as_v128() == 3
    assert WasmValue.ref_func(4).as_ref_func() == 4
    assert WasmValue.ref_extern(4).as_ref_extern() == 4
    assert WasmValue.ref_extern(4).as_ref_func() is None
    assert WasmValue.ref_null(ValType.RefFunc).as_ref_null() is ValType.RefFunc
    assert WasmValue.ref_func(4).as_ref_null() is None
    assert WasmValue.ref_null(ValType.RefFunc).as_ref_func() is None


def test_out_of_range_rejected():
    with pytest.raises(ValueError):
        WasmValue.i32(2**31)
    with pytest.raises(ValueError):
        WasmValue.v128(-1)
    with pytest.raises(TypeError):
        WasmValue.i32(1.5)
    with pytest.raises(TypeError):
        WasmValue.ref_null(ValType.I32)


def test_f32_rounding_is_idempotent():
    once = WasmValue.f32(0.1).value
    assert once != 0.1
    assert WasmValue.f32(once).value == once


def test_repr():
    assert repr(WasmValue.i32(5)) == "i32(5)"
    assert repr(WasmValue.ref_func(3)) == "ref.func(3)"
    assert repr(WasmValue.ref_null(ValType.RefFunc)) == "ref.null(RefFunc)"


@given(st.integers(min_value=-(2**31), max_value=2**31 - 1))
def test_i32_round_trip(n):
    v = WasmValue.i32(n)
    assert v.as_i32() == n
    assert v.eq_loose(WasmValue.i32(n))
    assert hash(v) == hash(WasmValue.i32(n))


@given(st.floats(allow_nan=True))
def test_f64_loose_self_equality(x):
    assert WasmValue.f64(x).eq_loose(WasmValue.f64(x))