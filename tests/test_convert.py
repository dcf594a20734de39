# tests/test_convert.py
"""
Tests for configkit.convert.convert_value().
"""

import datetime
import decimal
import enum
from pathlib import Path
from typing import Annotated, Literal, Optional

import pytest

from configkit.convert import convert_value, is_record_type, parse_duration
from configkit.exceptions import ConversionError


class Level(enum.Enum):
    LOW = "low"
    HIGH = "high"


class Mode(enum.Enum):
    FAST = 1
    SAFE = 2


class Secret:
    def __init__(self, raw):
        self.raw = raw

    @classmethod
    def from_config_string(cls, raw):
        if not raw:
            raise ValueError("empty secret")
        return cls(raw)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


class TestScalars:

    @pytest.mark.parametrize("raw", ["1", "t", "TRUE", "True", "yes", "on"])
    def test_bool_true(self, raw):
        assert convert_value(raw, bool) is True

    @pytest.mark.parametrize("raw", ["0", "f", "FALSE", "false", "no", "off"])
    def test_bool_false(self, raw):
        assert convert_value(raw, bool) is False

    def test_bool_invalid(self):
        with pytest.raises(ConversionError, match="maybe"):
            convert_value("maybe", bool, "flag")

    def test_unevaluated_builtin_name(self):
        assert convert_value("7", "int") == 7
        assert convert_value("x", "str") == "x"

    def test_int(self):
        assert convert_value(" 42 ", int) == 42

    def test_int_with_underscores(self):
        assert convert_value("1_000", int) == 1000

    def test_int_invalid(self):
        with pytest.raises(ConversionError) as exc:
            convert_value("4.2", int, "count")
        assert exc.value.key == "count"
        assert "count" in str(exc.value)

    def test_float(self):
        assert convert_value("2.5", float) == 2.5

    def test_decimal(self):
        assert convert_value("0.10", decimal.Decimal) == decimal.Decimal("0.10")

    def test_decimal_invalid(self):
        with pytest.raises(ConversionError):
            convert_value("ten", decimal.Decimal)

    def test_bytes(self):
        assert convert_value("abc", bytes) == b"abc"

    def test_annotated_unwrapped(self):
        assert convert_value("7", Annotated[int, "meta"]) == 7

    def test_unsupported(self):
        with pytest.raises(ConversionError, match="unsupported"):
            convert_value("x", dict, "blob")


# ---------------------------------------------------------------------------
# Paths, durations, enums
# ---------------------------------------------------------------------------


class TestRichTypes:

    def test_path_expands_user(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/testuser")
        assert convert_value("~/data", Path) == Path("/home/testuser/data")

    def test_duration_compound(self):
        assert convert_value("1h30m", datetime.timedelta) == datetime.timedelta(hours=1, minutes=30)

    def test_duration_millis(self):
        assert parse_duration("250ms") == datetime.timedelta(milliseconds=250)

    def test_duration_bare_seconds(self):
        assert parse_duration("90") == datetime.timedelta(seconds=90)

    def test_duration_negative(self):
        assert parse_duration("-1.5s") == datetime.timedelta(seconds=-1.5)

    def test_duration_invalid(self):
        with pytest.raises(ConversionError):
            convert_value("5x", datetime.timedelta, "timeout")

    def test_enum_by_name(self):
        assert convert_value("high", Level) is Level.HIGH

    def test_enum_by_value(self):
        assert convert_value("2", Mode) is Mode.SAFE

    def test_enum_invalid(self):
        with pytest.raises(ConversionError):
            convert_value("medium", Level)

    def test_literal(self):
        assert convert_value("b", Literal["a", "b"]) == "b"

    def test_literal_invalid(self):
        with pytest.raises(ConversionError):
            convert_value("c", Literal["a", "b"])

    def test_from_config_string(self):
        value = convert_value("hunter2", Secret)
        assert isinstance(value, Secret)
        assert value.raw == "hunter2"

    def test_from_config_string_failure(self):
        with pytest.raises(ConversionError, match="empty secret"):
            convert_value("", Secret, "token")


# ---------------------------------------------------------------------------
# Collections and unions
# ---------------------------------------------------------------------------


class TestCompound:

    def test_list_of_int(self):
        assert convert_value("1, 2,3", list[int]) == [1, 2, 3]

    def test_empty_list(self):
        assert convert_value("", list[str]) == []

    def test_bare_list(self):
        assert convert_value("a,b", list) == ["a", "b"]

    def test_variadic_tuple(self):
        assert convert_value("a,b", tuple[str, ...]) == ("a", "b")

    def test_fixed_tuple_rejected(self):
        with pytest.raises(ConversionError):
            convert_value("a,b", tuple[str, str])

    def test_set(self):
        assert convert_value("x,y,x", set[str]) == {"x", "y"}

    def test_list_item_error(self):
        with pytest.raises(ConversionError):
            convert_value("1,two", list[int], "ports")

    def test_optional_empty_is_none(self):
        assert convert_value("", Optional[int]) is None

    def test_optional_value(self):
        assert convert_value("5", Optional[int]) == 5

    def test_pep604_union(self):
        assert convert_value("", int | None) is None
        assert convert_value("3", int | None) == 3

    def test_union_tries_members_in_order(self):
        assert convert_value("abc", int | str) == "abc"
        assert convert_value("12", int | str) == 12

    def test_union_failure(self):
        with pytest.raises(ConversionError):
            convert_value("abc", int | float)


class TestIsRecordType:

    def test_dataclass(self):
        from dataclasses import dataclass

        @dataclass
        class Db:
            port: int = 0

        assert is_record_type(Db)
        assert not is_record_type(int)
        assert not is_record_type(Secret)
