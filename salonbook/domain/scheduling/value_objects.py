"""Scheduling value objects - immutable primitives shared by the entities"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from ...config import DEFAULT_CURRENCY
from ...shared.result import Err, Ok, Result
from ...shared.validators import format_br_phone, is_valid_br_phone, normalize_phone, phones_are_equal
from .errors import InvalidPhoneError

CURRENCY_SYMBOLS = {"BRL": "R$", "USD": "US$", "EUR": "€"}

Number = Union[int, float, str, Decimal]


@dataclass(frozen=True, order=True)
class Duration:
    """Non-negative span of whole minutes"""

    minutes: int

    def __post_init__(self):
        if self.minutes < 0:
            raise ValueError("Duration cannot be negative")

    @classmethod
    def from_minutes(cls, minutes: int) -> "Duration":
        return cls(int(minutes))

    @classmethod
    def from_hours(cls, hours: float) -> "Duration":
        return cls(round(hours * 60))

    @classmethod
    def zero(cls) -> "Duration":
        return cls(0)

    @property
    def hours(self) -> float:
        return self.minutes / 60

    def to_timedelta(self) -> timedelta:
        return timedelta(minutes=self.minutes)

    def __add__(self, other: "Duration") -> "Duration":
        return Duration(self.minutes + other.minutes)

    def __sub__(self, other: "Duration") -> "Duration":
        if other.minutes > self.minutes:
            raise ValueError("Duration subtraction cannot be negative")
        return Duration(self.minutes - other.minutes)

    def __mul__(self, factor: float) -> "Duration":
        return Duration(round(self.minutes * factor))

    def format(self) -> str:
        """90 -> 1h30min, 60 -> 1h, 45 -> 45min"""
        if self.minutes == 0:
            return "0min"
        hours, mins = divmod(self.minutes, 60)
        if hours == 0:
            return f"{mins}min"
        if mins == 0:
            return f"{hours}h"
        return f"{hours}h{mins}min"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        amount = Decimal(str(self.amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if amount < 0:
            raise ValueError("Money amount cannot be negative")
        object.__setattr__(self, "amount", amount)

    @classmethod
    def of(cls, amount: Number, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(Decimal(str(amount)), currency)

    @classmethod
    def from_cents(cls, cents: int, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(Decimal(cents) / 100, currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(Decimal("0"), currency)

    @property
    def cents(self) -> int:
        return int(self.amount * 100)

    def is_zero(self) -> bool:
        return self.amount == 0

    def _assert_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot combine amounts in {self.currency} and {other.currency}")

    def __add__(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        if other.amount > self.amount:
            raise ValueError("Money subtraction cannot be negative")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Number) -> "Money":
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    def __gt__(self, other: "Money") -> bool:
        self._assert_same_currency(other)
        return self.amount > other.amount

    def __le__(self, other: "Money") -> bool:
        return not self > other

    def __ge__(self, other: "Money") -> bool:
        return not self < other

    def format_decimal(self) -> str:
        """1234.5 -> 1.234,50"""
        grouped = f"{self.amount:,.2f}"
        return grouped.replace(",", "_").replace(".", ",").replace("_", ".")

    def format(self) -> str:
        symbol = CURRENCY_SYMBOLS.get(self.currency, self.currency)
        return f"{symbol} {self.format_decimal()}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Phone:
    """Brazilian phone number kept as digits only"""

    value: str

    @classmethod
    def create(cls, raw: str) -> Result["Phone", InvalidPhoneError]:
        if not raw or not raw.strip():
            return Err(InvalidPhoneError())
        digits = normalize_phone(raw)
        if not is_valid_br_phone(digits):
            return Err(InvalidPhoneError(raw))
        return Ok(cls(digits))

    @classmethod
    def from_persistence(cls, raw: str) -> "Phone":
        return cls(normalize_phone(raw))

    @property
    def normalized(self) -> str:
        return self.value

    def format(self) -> str:
        return format_br_phone(self.value)

    def same_number(self, other: "Phone") -> bool:
        return phones_are_equal(self.value, other.value)

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class DateRange:
    """Half-open interval [start, end) between two aware instants"""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError("DateRange start must not be after its end")

    def overlaps(self, other: "DateRange") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def contains_range(self, other: "DateRange") -> bool:
        return self.start <= other.start and self.end >= other.end

    @property
    def duration_minutes(self) -> int:
        return round((self.end - self.start).total_seconds() / 60)

    def __str__(self) -> str:
        return f"{self.start.isoformat()} - {self.end.isoformat()}"
