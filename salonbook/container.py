"""
Per-request wiring of repositories, providers and use cases.

Everything here is bound to one SQLAlchemy Session; routes build a
Container through ``get_container`` and pull the use cases they need.
"""

from typing import Callable, Optional

from sqlalchemy.orm import Session

from .config import INTEGRATION_SYNC_MODE
from .domain.customers.repository import CustomerRepository
from .domain.customers.service import IdentifyCustomerUseCase, SaveCustomerPreferenceUseCase
from .domain.salons.repository import LeadRepository, SalonRepository
from .domain.salons.service import (
    GetProfessionalAvailabilityRulesUseCase,
    GetProfessionalsUseCase,
    GetSalonDetailsUseCase,
    QualifyLeadUseCase,
)
from .domain.scheduling.availability_service import AvailabilityService
from .domain.scheduling.integration_service import IntegrationSyncService, SyncDispatcher
from .domain.scheduling.ports import ICalendarService, IExternalScheduler
from .domain.scheduling.repository import (
    AppointmentRepository,
    AvailabilityRepository,
    ProfessionalRepository,
    ServiceRepository,
)
from .domain.scheduling.use_cases import (
    CancelAppointmentUseCase,
    CheckAvailabilityUseCase,
    CreateAppointmentUseCase,
    GetAvailableSlotsUseCase,
    GetUpcomingAppointmentsUseCase,
    UpdateAppointmentUseCase,
)
from .services.google_calendar_service import GoogleCalendarService
from .services.trinks_service import TrinksService
from .shared.time_utils import utc_now


class Container:
    def __init__(
        self,
        db: Session,
        calendar_service: Optional[ICalendarService] = None,
        external_scheduler: Optional[IExternalScheduler] = None,
        sync_mode: str = INTEGRATION_SYNC_MODE,
        schedule: Optional[Callable] = None,
        clock: Callable = utc_now,
    ):
        self.db = db
        self.clock = clock

        self.appointments = AppointmentRepository(db)
        self.availability = AvailabilityRepository(db)
        self.salons = SalonRepository(db)
        self.professionals = ProfessionalRepository(db)
        self.services = ServiceRepository(db)
        self.customers = CustomerRepository(db)
        self.leads = LeadRepository(db)

        self.calendar_service = calendar_service if calendar_service is not None else GoogleCalendarService(db)
        self.external_scheduler = external_scheduler if external_scheduler is not None else TrinksService(db)

        self.availability_service = AvailabilityService(
            self.appointments,
            self.availability,
            self.salons,
            self.professionals,
            calendar_service=self.calendar_service,
            external_scheduler=self.external_scheduler,
        )
        self.sync_dispatcher = SyncDispatcher(
            IntegrationSyncService(self.calendar_service, self.external_scheduler),
            self.appointments,
            mode=sync_mode,
            schedule=schedule,
        )

    def _booking_deps(self) -> tuple:
        return (self.appointments, self.customers, self.professionals, self.services, self.salons)

    def create_appointment(self) -> CreateAppointmentUseCase:
        return CreateAppointmentUseCase(*self._booking_deps(), sync_dispatcher=self.sync_dispatcher, clock=self.clock)

    def update_appointment(self) -> UpdateAppointmentUseCase:
        return UpdateAppointmentUseCase(*self._booking_deps(), sync_dispatcher=self.sync_dispatcher, clock=self.clock)

    def cancel_appointment(self) -> CancelAppointmentUseCase:
        return CancelAppointmentUseCase(*self._booking_deps(), sync_dispatcher=self.sync_dispatcher, clock=self.clock)

    def upcoming_appointments(self) -> GetUpcomingAppointmentsUseCase:
        return GetUpcomingAppointmentsUseCase(*self._booking_deps(), clock=self.clock)

    def check_availability(self) -> CheckAvailabilityUseCase:
        return CheckAvailabilityUseCase(
            self.availability_service, self.salons, self.services, self.professionals, clock=self.clock
        )

    def available_slots(self) -> GetAvailableSlotsUseCase:
        return GetAvailableSlotsUseCase(
            self.availability_service, self.salons, self.services, self.professionals, clock=self.clock
        )

    def salon_details(self) -> GetSalonDetailsUseCase:
        return GetSalonDetailsUseCase(self.salons, clock=self.clock)

    def qualify_lead(self) -> QualifyLeadUseCase:
        return QualifyLeadUseCase(self.salons, self.leads, clock=self.clock)

    def identify_customer(self) -> IdentifyCustomerUseCase:
        return IdentifyCustomerUseCase(self.customers, self.salons)

    def save_customer_preference(self) -> SaveCustomerPreferenceUseCase:
        return SaveCustomerPreferenceUseCase(self.customers)

    def list_professionals(self) -> GetProfessionalsUseCase:
        return GetProfessionalsUseCase(self.salons, self.professionals, self.services)

    def professional_availability_rules(self) -> GetProfessionalAvailabilityRulesUseCase:
        return GetProfessionalAvailabilityRulesUseCase(self.professionals, self.availability)
