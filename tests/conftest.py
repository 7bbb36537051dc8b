"""Shared fixtures for the salonbook test suite.

Every test gets a fresh in-memory SQLite database with one salon, one
professional able to perform one 30 minute service, and one customer.
Provider ports are replaced by in-memory fakes and "now" is pinned to
Monday 2025-01-27 09:00 in São Paulo (12:00 UTC).
"""
import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from salonbook import models, models_integrations  # noqa: F401
from salonbook.database import Base
from salonbook.domain.customers.repository import CustomerRepository
from salonbook.domain.salons.repository import LeadRepository, SalonRepository
from salonbook.domain.scheduling.availability_service import AvailabilityService
from salonbook.domain.scheduling.entities import TimeSlot
from salonbook.domain.scheduling.integration_service import IntegrationSyncService, SyncDispatcher
from salonbook.domain.scheduling.ports import (
    AppointmentSyncData,
    CalendarEvent,
    ICalendarService,
    IExternalScheduler,
    ProviderEventNotFound,
)
from salonbook.domain.scheduling.repository import (
    AppointmentRepository,
    AvailabilityRepository,
    ProfessionalRepository,
    ServiceRepository,
)
from salonbook.shared.time_utils import get_zone

SAO_PAULO = get_zone("America/Sao_Paulo")
NOW = datetime(2025, 1, 27, 12, 0, tzinfo=timezone.utc)

SALON_ID = "salon-1"
PROFESSIONAL_ID = "prof-1"
OTHER_PROFESSIONAL_ID = "prof-2"
SERVICE_ID = "service-cut"
LONG_SERVICE_ID = "service-color"
CUSTOMER_ID = "customer-1"
CUSTOMER_PHONE = "11987654321"


def fixed_clock():
    return NOW


class FakeCalendar(ICalendarService):
    """In-memory Google Calendar stand-in"""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.busy = []
        self.events = {}
        self.calls = []
        self.fail_with: Optional[BaseException] = None
        self.delay = 0.0
        self._next_id = 0

    async def _maybe_fail(self, name):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    async def is_configured(self, salon_id):
        return self.configured

    async def get_free_busy(self, salon_id, calendar_id, start, end):
        await self._maybe_fail("get_free_busy")
        return list(self.busy)

    async def create_event(self, salon_id, calendar_id, event: CalendarEvent):
        await self._maybe_fail("create_event")
        self._next_id += 1
        event_id = f"gcal-{self._next_id}"
        self.events[event_id] = event
        return event_id

    async def update_event(self, salon_id, calendar_id, event_id, event: CalendarEvent):
        await self._maybe_fail("update_event")
        if event_id not in self.events:
            raise ProviderEventNotFound(event_id)
        self.events[event_id] = event

    async def delete_event(self, salon_id, calendar_id, event_id):
        await self._maybe_fail("delete_event")
        if event_id not in self.events:
            raise ProviderEventNotFound(event_id)
        del self.events[event_id]


class FakeScheduler(IExternalScheduler):
    """In-memory Trinks stand-in"""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.busy = []
        self.bookings = {}
        self.calls = []
        self.fail_with: Optional[BaseException] = None
        self._next_id = 0

    async def _maybe_fail(self, name):
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    async def is_configured(self, salon_id):
        return self.configured

    async def get_busy_slots(self, salon_id, professional_id, start, end):
        await self._maybe_fail("get_busy_slots")
        return [TimeSlot(start=s, end=e, available=False, professional_id=professional_id) for s, e in self.busy]

    async def create_appointment(self, booking: AppointmentSyncData):
        await self._maybe_fail("create_appointment")
        self._next_id += 1
        external_id = f"trinks-{self._next_id}"
        self.bookings[external_id] = booking
        return external_id

    async def update_appointment(self, external_id, booking: AppointmentSyncData):
        await self._maybe_fail("update_appointment")
        if external_id not in self.bookings:
            raise ProviderEventNotFound(external_id)
        self.bookings[external_id] = booking

    async def delete_appointment(self, salon_id, external_id):
        await self._maybe_fail("delete_appointment")
        if external_id not in self.bookings:
            raise ProviderEventNotFound(external_id)
        del self.bookings[external_id]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db):
    """Salon open Monday to Saturday 09:00-18:00 with one bookable professional"""
    salon = models.Salon(
        id=SALON_ID,
        owner_id="owner-1",
        name="Studio Bella",
        address="Rua Augusta, 100",
        phone="1133334444",
        timezone="America/Sao_Paulo",
        work_hours=None,
        settings={"cancellation_policy": "Cancelamentos até 2h antes"},
        plan="team",
    )
    cut = models.Service(
        id=SERVICE_ID, salon_id=SALON_ID, name="Corte Feminino", duration_minutes=30, price=80, is_active=True
    )
    color = models.Service(
        id=LONG_SERVICE_ID, salon_id=SALON_ID, name="Coloração", duration_minutes=90, price=200, is_active=True
    )
    ana = models.Professional(
        id=PROFESSIONAL_ID,
        salon_id=SALON_ID,
        name="Ana",
        is_active=True,
        google_calendar_id="ana@studio.test",
    )
    ana.services = [cut, color]
    bruno = models.Professional(id=OTHER_PROFESSIONAL_ID, salon_id=SALON_ID, name="Bruno", is_active=True)
    bruno.services = [cut]
    customer = models.Customer(id=CUSTOMER_ID, salon_id=SALON_ID, phone=CUSTOMER_PHONE, name="Maria Silva")

    db.add_all([salon, cut, color, ana, bruno, customer])
    db.commit()
    return db


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def repos(seeded):
    return {
        "appointments": AppointmentRepository(seeded),
        "availability": AvailabilityRepository(seeded),
        "salons": SalonRepository(seeded),
        "professionals": ProfessionalRepository(seeded),
        "services": ServiceRepository(seeded),
        "customers": CustomerRepository(seeded),
        "leads": LeadRepository(seeded),
    }


@pytest.fixture
def availability_service(repos, calendar, scheduler):
    return AvailabilityService(
        repos["appointments"],
        repos["availability"],
        repos["salons"],
        repos["professionals"],
        calendar_service=calendar,
        external_scheduler=scheduler,
        provider_timeout=0.2,
    )


@pytest.fixture
def dispatcher(repos, calendar, scheduler):
    return SyncDispatcher(
        IntegrationSyncService(calendar, scheduler, provider_timeout=0.2),
        repos["appointments"],
        mode="inline",
    )


@pytest.fixture
def booking_deps(repos):
    return (
        repos["appointments"],
        repos["customers"],
        repos["professionals"],
        repos["services"],
        repos["salons"],
    )
