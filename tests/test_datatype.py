import pytest

from evtdecomp.datatype import ANY, BOOL, FLOAT, INT, DataType, TypeKind, parse_datatype, unify


def test_string_forms() -> None:
    assert str(ANY) == "any"
    assert str(DataType.fun([INT, BOOL])) == "fun(int, bool)"
    assert str(DataType.asm()) == "asm()"


def test_parse_round_trips_textual_form() -> None:
    assert parse_datatype(" Bool ") == BOOL
    assert parse_datatype("asm(int, fun(bool), float)") == DataType.asm(
        [INT, DataType.fun([BOOL]), FLOAT]
    )
    assert parse_datatype("fun()") == DataType.fun()
    with pytest.raises(ValueError):
        parse_datatype("string")


def test_unify_treats_any_as_wildcard() -> None:
    assert unify(ANY, BOOL) == BOOL
    assert unify(INT, ANY) == INT
    assert unify(INT, INT) == INT
    assert unify(INT, BOOL) is None


def test_callable_kinds_are_distinct() -> None:
    fun = DataType.fun([INT])
    asm = DataType.asm([INT])
    assert fun != asm
    assert fun.is_callable and asm.is_callable
    assert fun.kind is TypeKind.FUN
    assert not INT.is_callable
