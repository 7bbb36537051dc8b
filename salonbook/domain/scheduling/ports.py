"""
Ports consumed by the scheduling core.

Repository ports return domain entities or ``None``; ``None`` means "not
found" and is never an error. External-service ports are optional: when a
provider is absent or not configured for a salon the core works internal-only.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from .entities import (
    Appointment,
    AvailabilityRule,
    Customer,
    Lead,
    Professional,
    Salon,
    ScheduleOverride,
    Service,
    TimeSlot,
)
from .value_objects import DateRange


class ProviderEventNotFound(Exception):
    """The remote event or booking no longer exists on the provider side"""


@dataclass(frozen=True)
class CalendarEvent:
    start: datetime
    end: datetime
    summary: str
    description: Optional[str] = None


@dataclass(frozen=True)
class AppointmentSyncData:
    """Everything a provider needs to mirror one appointment"""

    appointment_id: str
    salon_id: str
    professional_id: str
    customer_id: str
    service_id: str
    starts_at: datetime
    ends_at: datetime
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    service_name: Optional[str] = None
    professional_name: Optional[str] = None
    notes: Optional[str] = None
    google_event_id: Optional[str] = None
    trinks_event_id: Optional[str] = None
    professional_google_calendar_id: Optional[str] = None

    @property
    def summary(self) -> str:
        return f"{self.service_name or 'Serviço'} - {self.customer_name or 'Cliente'}"

    def to_calendar_event(self) -> CalendarEvent:
        return CalendarEvent(start=self.starts_at, end=self.ends_at, summary=self.summary, description=self.notes)


# Repositories


class IAppointmentRepository(ABC):
    @abstractmethod
    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]: ...

    @abstractmethod
    async def find_by_professional_and_date(
        self, professional_id: str, day: date, tz: ZoneInfo
    ) -> list[Appointment]:
        """Non-cancelled appointments starting within the local day"""

    @abstractmethod
    async def find_conflicting(
        self, professional_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        """Non-cancelled appointments overlapping [start, end)"""

    @abstractmethod
    async def find_by_customer(self, customer_id: str) -> list[Appointment]: ...

    @abstractmethod
    async def find_upcoming(self, customer_id: str, salon_id: str, now: datetime) -> list[Appointment]: ...

    @abstractmethod
    async def find_upcoming_by_phone(self, phone: str, salon_id: str, now: datetime) -> list[Appointment]: ...

    @abstractmethod
    async def save(self, appointment: Appointment) -> Appointment: ...

    @abstractmethod
    async def save_exclusive(self, appointment: Appointment) -> bool:
        """Re-check conflicts and save in one transaction; False when another booking won"""

    @abstractmethod
    async def update_external_ids(
        self,
        appointment_id: str,
        google_event_id: Optional[str] = None,
        trinks_event_id: Optional[str] = None,
    ) -> None: ...

    @abstractmethod
    async def delete(self, appointment_id: str) -> None: ...


class IAvailabilityRepository(ABC):
    @abstractmethod
    async def find_by_professional(self, professional_id: str) -> list[AvailabilityRule]: ...

    @abstractmethod
    async def find_by_professional_and_day(self, professional_id: str, day_of_week: int) -> list[AvailabilityRule]: ...

    @abstractmethod
    async def find_overrides(self, salon_id: str, start: datetime, end: datetime) -> list[ScheduleOverride]: ...

    @abstractmethod
    async def find_overrides_by_professional(
        self, professional_id: str, start: datetime, end: datetime
    ) -> list[ScheduleOverride]: ...

    @abstractmethod
    async def generate_slots(
        self, professional_id: str, day: date, granularity: int, tz: ZoneInfo
    ) -> list[TimeSlot]: ...

    @abstractmethod
    async def save_rule(self, rule: AvailabilityRule) -> AvailabilityRule: ...

    @abstractmethod
    async def delete_rule(self, rule_id: str) -> None: ...

    @abstractmethod
    async def save_override(self, override: ScheduleOverride) -> ScheduleOverride: ...

    @abstractmethod
    async def delete_override(self, override_id: str) -> None: ...


class ISalonRepository(ABC):
    @abstractmethod
    async def find_by_id(self, salon_id: str) -> Optional[Salon]: ...

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Optional[Salon]: ...

    @abstractmethod
    async def find_by_owner(self, owner_id: str) -> list[Salon]: ...

    @abstractmethod
    async def save(self, salon: Salon) -> Salon: ...


class IServiceRepository(ABC):
    @abstractmethod
    async def find_by_id(self, service_id: str) -> Optional[Service]: ...

    @abstractmethod
    async def find_by_salon(self, salon_id: str, include_inactive: bool = False) -> list[Service]: ...

    @abstractmethod
    async def save(self, service: Service) -> Service: ...


class ICustomerRepository(ABC):
    @abstractmethod
    async def find_by_id(self, customer_id: str) -> Optional[Customer]: ...

    @abstractmethod
    async def find_by_phone(self, phone: str, salon_id: str) -> Optional[Customer]: ...

    @abstractmethod
    async def find_by_salon(self, salon_id: str) -> list[Customer]: ...

    @abstractmethod
    async def save(self, customer: Customer) -> Customer: ...

    @abstractmethod
    async def get_or_create(self, salon_id: str, phone: str, name: Optional[str] = None) -> Customer:
        """Insert if missing, ignore the unique conflict, then re-select"""


class IProfessionalRepository(ABC):
    @abstractmethod
    async def find_by_id(self, professional_id: str) -> Optional[Professional]: ...

    @abstractmethod
    async def find_by_salon(self, salon_id: str, include_inactive: bool = False) -> list[Professional]: ...

    @abstractmethod
    async def find_by_name(self, name: str, salon_id: str) -> Optional[Professional]: ...

    @abstractmethod
    async def save(self, professional: Professional) -> Professional: ...


class ILeadRepository(ABC):
    @abstractmethod
    async def find_by_phone(self, phone: str, salon_id: str) -> Optional[Lead]: ...

    @abstractmethod
    async def upsert(
        self, salon_id: str, phone: str, status: str, notes: Optional[str], now: datetime
    ) -> Lead: ...


# External services


class ICalendarService(ABC):
    @abstractmethod
    async def is_configured(self, salon_id: str) -> bool: ...

    @abstractmethod
    async def get_free_busy(
        self, salon_id: str, calendar_id: str, start: datetime, end: datetime
    ) -> list[DateRange]: ...

    @abstractmethod
    async def create_event(self, salon_id: str, calendar_id: str, event: CalendarEvent) -> str: ...

    @abstractmethod
    async def update_event(self, salon_id: str, calendar_id: str, event_id: str, event: CalendarEvent) -> None: ...

    @abstractmethod
    async def delete_event(self, salon_id: str, calendar_id: str, event_id: str) -> None: ...


class IExternalScheduler(ABC):
    @abstractmethod
    async def is_configured(self, salon_id: str) -> bool: ...

    @abstractmethod
    async def get_busy_slots(
        self, salon_id: str, professional_id: str, start: datetime, end: datetime
    ) -> list[TimeSlot]: ...

    @abstractmethod
    async def create_appointment(self, booking: AppointmentSyncData) -> str: ...

    @abstractmethod
    async def update_appointment(self, external_id: str, booking: AppointmentSyncData) -> None: ...

    @abstractmethod
    async def delete_appointment(self, salon_id: str, external_id: str) -> None: ...
