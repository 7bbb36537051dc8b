"""
Scheduling entities.

Entities are immutable snapshots. Every state change returns a new instance
(``dataclasses.replace``) and transitions that can be refused return a
``Result`` instead of raising.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from ...config import BUSINESS_TIMEZONE
from ...shared.result import Err, Ok, Result
from ...shared.time_utils import (
    day_of_week,
    format_time,
    get_zone,
    parse_hhmm,
    time_to_minutes,
    to_local,
    utc_now,
)
from .errors import PastAppointmentError, RequiredFieldError
from .value_objects import DateRange, Duration, Money, Phone

APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled", "completed")
TERMINAL_STATUSES = ("cancelled", "completed")
LEAD_STATUSES = ("new", "cold", "recently_scheduled")


@dataclass(frozen=True)
class WorkingHours:
    start: str  # HH:MM
    end: str

    def __post_init__(self):
        if parse_hhmm(self.start) >= parse_hhmm(self.end):
            raise ValueError(f"Working hours start {self.start} must be before end {self.end}")

    def contains(self, hhmm: str) -> bool:
        return self.start <= hhmm < self.end


@dataclass(frozen=True)
class Salon:
    id: str
    owner_id: str
    name: str
    slug: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    timezone: str = BUSINESS_TIMEZONE
    # 0 = Sunday ... 6 = Saturday, at most one interval per day
    working_hours: Mapping[int, WorkingHours] = field(default_factory=dict)
    settings: Mapping[str, Any] = field(default_factory=dict)
    plan: str = "trial"

    @property
    def zone(self) -> ZoneInfo:
        return get_zone(self.timezone)

    def working_hours_for(self, day: int) -> Optional[WorkingHours]:
        return self.working_hours.get(day)

    def is_open(self, instant: datetime) -> bool:
        local = to_local(instant, self.zone)
        hours = self.working_hours_for(day_of_week(local.date()))
        if not hours:
            return False
        return hours.contains(local.strftime("%H:%M"))

    def setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    @property
    def cancellation_policy(self) -> Optional[str]:
        return self.setting("cancellation_policy")

    def is_solo_plan(self) -> bool:
        return self.plan == "solo" or self.setting("is_solo") is True

    def with_working_hours(self, working_hours: Mapping[int, WorkingHours]) -> "Salon":
        return replace(self, working_hours=dict(working_hours))

    def with_setting(self, key: str, value: Any) -> "Salon":
        return replace(self, settings={**self.settings, key: value})


@dataclass(frozen=True)
class Professional:
    id: str
    salon_id: str
    name: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str = "STAFF"
    is_active: bool = True
    service_ids: frozenset = frozenset()
    google_calendar_id: Optional[str] = None

    def can_perform_service(self, service_id: str) -> bool:
        return service_id in self.service_ids

    def is_available(self) -> bool:
        return self.is_active

    def has_google_calendar(self) -> bool:
        return bool(self.google_calendar_id)

    def with_service(self, service_id: str) -> "Professional":
        return replace(self, service_ids=self.service_ids | {service_id})

    def without_service(self, service_id: str) -> "Professional":
        return replace(self, service_ids=self.service_ids - {service_id})

    def activate(self) -> "Professional":
        return replace(self, is_active=True)

    def deactivate(self) -> "Professional":
        return replace(self, is_active=False)


@dataclass(frozen=True)
class Service:
    id: str
    salon_id: str
    name: str
    duration: Duration
    price: Money
    description: Optional[str] = None
    price_type: str = "fixed"  # fixed, range
    price_min: Optional[Money] = None
    price_max: Optional[Money] = None
    is_active: bool = True

    def __post_init__(self):
        if self.duration.minutes <= 0:
            raise ValueError("Service duration must be greater than zero")
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            raise ValueError("Service minimum price must not exceed the maximum price")

    @property
    def duration_minutes(self) -> int:
        return self.duration.minutes

    def is_bookable(self) -> bool:
        return self.is_active

    def has_variable_price(self) -> bool:
        return self.price_type == "range" and self.price_min is not None and self.price_max is not None

    def format_price(self) -> str:
        if self.has_variable_price():
            return f"{self.price_min.format()} - {self.price_max.format()}"
        return self.price.format()

    def format_duration(self) -> str:
        return self.duration.format()

    def activate(self) -> "Service":
        return replace(self, is_active=True)

    def deactivate(self) -> "Service":
        return replace(self, is_active=False)


@dataclass(frozen=True)
class Customer:
    id: str
    salon_id: str
    phone: Phone
    name: str
    email: Optional[str] = None
    preferences: Mapping[str, Any] = field(default_factory=dict)
    ai_preferences: Optional[str] = None

    def is_identified(self) -> bool:
        """A customer is identified once they have a real name instead of their phone number"""
        return bool(self.name.strip()) and self.name != self.phone.format()

    def with_name(self, name: str) -> Result["Customer", RequiredFieldError]:
        if not name or not name.strip():
            return Err(RequiredFieldError("nome"))
        return Ok(replace(self, name=name.strip()))

    def with_preference(self, key: str, value: Any) -> "Customer":
        return replace(self, preferences={**self.preferences, key: value})

    def without_preference(self, key: str) -> "Customer":
        return replace(self, preferences={k: v for k, v in self.preferences.items() if k != key})


@dataclass(frozen=True)
class Lead:
    id: str
    salon_id: str
    phone_number: str
    status: str = "new"
    notes: Optional[str] = None
    last_contact_at: Optional[datetime] = None


@dataclass(frozen=True)
class AvailabilityRule:
    id: str
    professional_id: str
    day_of_week: int
    start_time: str  # HH:MM, salon local
    end_time: str
    is_break: bool = False

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {self.day_of_week}")
        if time_to_minutes(self.start_time) >= time_to_minutes(self.end_time):
            raise ValueError(f"Rule start {self.start_time} must be before end {self.end_time}")

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)


@dataclass(frozen=True)
class ScheduleOverride:
    """Vacation or closure blocking a salon, or one professional when professional_id is set"""

    id: str
    salon_id: str
    start: datetime
    end: datetime
    professional_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def range(self) -> DateRange:
        return DateRange(self.start, self.end)

    def applies_to(self, professional_id: Optional[str]) -> bool:
        return self.professional_id is None or self.professional_id == professional_id


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    available: bool = True
    professional_id: Optional[str] = None

    @property
    def range(self) -> DateRange:
        return DateRange(self.start, self.end)

    @property
    def duration_minutes(self) -> int:
        return self.range.duration_minutes

    def overlaps(self, other: DateRange) -> bool:
        return self.range.overlaps(other)

    def contains(self, instant: datetime) -> bool:
        return self.range.contains(instant)

    def can_fit(self, minutes: int) -> bool:
        """True when this single slot is available and at least ``minutes`` long"""
        return self.available and self.duration_minutes >= minutes

    def mark_unavailable(self) -> "TimeSlot":
        return replace(self, available=False)

    def mark_available(self) -> "TimeSlot":
        return replace(self, available=True)

    def start_time(self, tz: Optional[ZoneInfo] = None) -> str:
        return format_time(self.start, tz)

    def format(self, tz: Optional[ZoneInfo] = None) -> str:
        return f"{format_time(self.start, tz)} - {format_time(self.end, tz)}"


@dataclass(frozen=True)
class Appointment:
    id: str
    salon_id: str
    customer_id: str
    professional_id: str
    service_id: str
    starts_at: datetime
    ends_at: datetime
    status: str = "pending"
    notes: Optional[str] = None
    google_event_id: Optional[str] = None
    trinks_event_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.status not in APPOINTMENT_STATUSES:
            raise ValueError(f"Unknown appointment status '{self.status}'")
        if self.ends_at <= self.starts_at:
            raise ValueError("Appointment must end after it starts")

    @classmethod
    def create(
        cls,
        id: str,
        salon_id: str,
        customer_id: str,
        professional_id: str,
        service_id: str,
        starts_at: datetime,
        duration: Duration,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Appointment":
        now = now or utc_now()
        return cls(
            id=id,
            salon_id=salon_id,
            customer_id=customer_id,
            professional_id=professional_id,
            service_id=service_id,
            starts_at=starts_at,
            ends_at=starts_at + duration.to_timedelta(),
            status="pending",
            notes=notes,
            created_at=now,
            updated_at=now,
        )

    @property
    def range(self) -> DateRange:
        return DateRange(self.starts_at, self.ends_at)

    @property
    def duration(self) -> Duration:
        return Duration(self.range.duration_minutes)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    def is_past(self, now: Optional[datetime] = None) -> bool:
        return self.ends_at < (now or utc_now())

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        return self.starts_at > (now or utc_now()) and not self.is_cancelled

    def is_in_progress(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        return self.starts_at <= now < self.ends_at

    def can_be_modified(self, now: Optional[datetime] = None) -> bool:
        return not self.is_past(now) and self.status not in TERMINAL_STATUSES

    def overlaps(self, other: "Appointment") -> bool:
        if self.is_cancelled or other.is_cancelled:
            return False
        return self.range.overlaps(other.range)

    def _touch(self, now: Optional[datetime], **changes) -> "Appointment":
        return replace(self, updated_at=now or utc_now(), **changes)

    def cancel(self, now: Optional[datetime] = None) -> Result["Appointment", PastAppointmentError]:
        if self.is_past(now):
            return Err(PastAppointmentError("Não é possível cancelar um agendamento passado"))
        return Ok(self._touch(now, status="cancelled"))

    def confirm(self, now: Optional[datetime] = None) -> Result["Appointment", PastAppointmentError]:
        if self.is_past(now):
            return Err(PastAppointmentError("Não é possível confirmar um agendamento passado"))
        return Ok(self._touch(now, status="confirmed"))

    def complete(self, now: Optional[datetime] = None) -> "Appointment":
        return self._touch(now, status="completed")

    def reschedule(
        self, starts_at: datetime, ends_at: datetime, now: Optional[datetime] = None
    ) -> Result["Appointment", PastAppointmentError]:
        now = now or utc_now()
        if self.is_past(now):
            return Err(PastAppointmentError("Não é possível reagendar um agendamento passado"))
        if starts_at < now:
            return Err(PastAppointmentError("Não é possível reagendar para um horário passado"))
        return Ok(self._touch(now, starts_at=starts_at, ends_at=ends_at))

    def change_professional(
        self, professional_id: str, now: Optional[datetime] = None
    ) -> Result["Appointment", PastAppointmentError]:
        if not self.can_be_modified(now):
            return Err(PastAppointmentError())
        return Ok(self._touch(now, professional_id=professional_id))

    def change_service(
        self, service_id: str, duration: Optional[Duration] = None, now: Optional[datetime] = None
    ) -> Result["Appointment", PastAppointmentError]:
        if not self.can_be_modified(now):
            return Err(PastAppointmentError())
        changes = {"service_id": service_id}
        if duration is not None:
            changes["ends_at"] = self.starts_at + timedelta(minutes=duration.minutes)
        return Ok(self._touch(now, **changes))

    def with_notes(self, notes: Optional[str], now: Optional[datetime] = None) -> "Appointment":
        return self._touch(now, notes=notes)

    def with_external_ids(
        self, google_event_id: Optional[str] = None, trinks_event_id: Optional[str] = None
    ) -> "Appointment":
        return replace(
            self,
            google_event_id=google_event_id or self.google_event_id,
            trinks_event_id=trinks_event_id or self.trinks_event_id,
        )
