"""Tests for the scheduling value objects and shared helpers."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from salonbook.domain.scheduling.errors import InvalidPhoneError
from salonbook.domain.scheduling.value_objects import DateRange, Duration, Money, Phone
from salonbook.shared.result import Err, Ok, is_err, is_ok, map_result, unwrap, unwrap_or
from salonbook.shared.validators import format_br_phone, is_valid_br_phone, phones_are_equal


class TestDuration:
    def test_format(self):
        assert Duration.from_minutes(90).format() == "1h30min"
        assert Duration.from_minutes(60).format() == "1h"
        assert Duration.from_minutes(45).format() == "45min"
        assert Duration.zero().format() == "0min"

    def test_from_hours_and_arithmetic(self):
        assert Duration.from_hours(1.5) == Duration(90)
        assert Duration(30) + Duration(45) == Duration(75)
        assert Duration(60) - Duration(15) == Duration(45)
        assert Duration(30) * 2 == Duration(60)
        assert Duration(30) < Duration(31)
        assert Duration(90).to_timedelta() == timedelta(minutes=90)

    def test_never_negative(self):
        with pytest.raises(ValueError):
            Duration(-1)
        with pytest.raises(ValueError):
            Duration(10) - Duration(20)


class TestMoney:
    def test_brazilian_format(self):
        assert Money.of("1234.5").format() == "R$ 1.234,50"
        assert Money.of(80).format_decimal() == "80,00"

    def test_cents_round_trip_precision(self):
        assert Money.from_cents(12345).amount == Decimal("123.45")
        assert Money.of("0.1").cents + Money.of("0.2").cents == 30

    def test_arithmetic(self):
        assert Money.of(10) + Money.of("2.50") == Money.of("12.50")
        assert Money.of(10) * 3 == Money.of(30)
        assert Money.of(5) < Money.of(6)
        with pytest.raises(ValueError):
            Money.of(1) - Money.of(2)

    def test_rejects_mixed_currencies(self):
        with pytest.raises(ValueError):
            Money.of(1, "BRL") + Money.of(1, "USD")

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            Money.of(-1)


class TestPhone:
    def test_create_normalizes_digits(self):
        result = Phone.create("+55 (11) 98765-4321")
        assert isinstance(result, Ok)
        assert result.value.normalized == "5511987654321"
        assert result.value.format() == "(11) 98765-4321"

    @pytest.mark.parametrize("raw", ["", "   ", "123", "11887654321", "0987654321"])
    def test_create_rejects_invalid(self, raw):
        result = Phone.create(raw)
        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidPhoneError)

    def test_same_number_ignores_country_code(self):
        assert Phone.from_persistence("5511987654321").same_number(Phone.from_persistence("11987654321"))

    def test_validators(self):
        assert is_valid_br_phone("1133334444")
        assert not is_valid_br_phone("1033334444")
        assert format_br_phone("1133334444") == "(11) 3333-4444"
        assert phones_are_equal("(11) 98765-4321", "5511987654321")


class TestDateRange:
    start = datetime(2025, 1, 28, 13, 0, tzinfo=timezone.utc)

    def test_half_open_overlap(self):
        first = DateRange(self.start, self.start + timedelta(minutes=30))
        touching = DateRange(self.start + timedelta(minutes=30), self.start + timedelta(minutes=60))
        inside = DateRange(self.start + timedelta(minutes=15), self.start + timedelta(minutes=45))

        assert not first.overlaps(touching)
        assert first.overlaps(inside)
        assert inside.overlaps(first)

    def test_contains(self):
        window = DateRange(self.start, self.start + timedelta(hours=1))
        assert window.contains(self.start)
        assert not window.contains(self.start + timedelta(hours=1))
        assert window.contains_range(DateRange(self.start, self.start + timedelta(minutes=10)))
        assert window.duration_minutes == 60

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError):
            DateRange(self.start, self.start - timedelta(minutes=1))


class TestResult:
    def test_helpers(self):
        ok, err = Ok(2), Err(ValueError("boom"))
        assert is_ok(ok) and is_err(err)
        assert unwrap(ok) == 2
        assert unwrap_or(err, 0) == 0
        assert map_result(ok, lambda v: v * 10) == Ok(20)
        assert map_result(err, lambda v: v * 10) is err
        with pytest.raises(ValueError):
            unwrap(err)

