"""Tests for the appointment use cases: create, update, cancel and upcoming."""
from datetime import datetime, timezone

from salonbook import models
from salonbook.domain.scheduling.entities import Appointment
from salonbook.domain.scheduling.errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    CONFLICT,
    CustomerNotFoundError,
    INVALID_STATE,
    InvalidDateError,
    PastAppointmentError,
    ProfessionalCannotPerformServiceError,
    ProfessionalInactiveError,
    RequiredFieldError,
    SalonNotFoundError,
)
from salonbook.domain.scheduling.schemas import (
    CancelAppointmentRequest,
    CreateAppointmentRequest,
    UpcomingAppointmentsRequest,
    UpdateAppointmentRequest,
)
from salonbook.domain.scheduling.use_cases import (
    OUT_OF_SYNC_MESSAGE,
    CancelAppointmentUseCase,
    CreateAppointmentUseCase,
    GetUpcomingAppointmentsUseCase,
    UpdateAppointmentUseCase,
)
from salonbook.domain.scheduling.value_objects import Duration
from salonbook.shared.result import Err, Ok

from tests.conftest import (
    CUSTOMER_ID,
    CUSTOMER_PHONE,
    LONG_SERVICE_ID,
    NOW,
    OTHER_PROFESSIONAL_ID,
    PROFESSIONAL_ID,
    SALON_ID,
    SERVICE_ID,
    fixed_clock,
)


def create_request(starts_at="2025-01-28T10:00:00", **overrides):
    data = {
        "salonId": SALON_ID,
        "customerId": CUSTOMER_ID,
        "professionalId": PROFESSIONAL_ID,
        "serviceId": SERVICE_ID,
        "startsAt": starts_at,
    }
    data.update(overrides)
    return CreateAppointmentRequest(**data)


async def book(booking_deps, dispatcher=None, **kwargs):
    use_case = CreateAppointmentUseCase(*booking_deps, sync_dispatcher=dispatcher, clock=fixed_clock)
    return await use_case.execute(create_request(**kwargs))


class TestCreateAppointment:
    async def test_creates_pending_appointment(self, booking_deps, repos):
        result = await book(booking_deps, notes="  Cliente prefere tesoura  ")

        assert isinstance(result, Ok)
        dto = result.value
        assert dto.status == "pending"
        assert dto.startsAt == "28/01/2025 às 10:00"
        assert dto.endsAt == "28/01/2025 às 10:30"
        assert dto.startsAtISO == "2025-01-28T13:00:00Z"
        assert dto.customerName == "Maria Silva"
        assert dto.professionalName == "Ana"
        assert dto.serviceName == "Corte Feminino"
        assert dto.notes == "Cliente prefere tesoura"
        assert dto.syncErrors == []
        assert dto.message == "Agendamento criado com sucesso"

        stored = await repos["appointments"].find_by_id(dto.id)
        assert stored.starts_at == datetime(2025, 1, 28, 13, 0, tzinfo=timezone.utc)
        assert stored.duration == Duration(30)

    async def test_overlap_is_rejected(self, booking_deps):
        assert isinstance(await book(booking_deps), Ok)

        result = await book(booking_deps, starts_at="2025-01-28T10:15:00")
        assert isinstance(result, Err)
        assert isinstance(result.error, AppointmentConflictError)
        assert result.error.kind == CONFLICT

    async def test_back_to_back_is_allowed(self, booking_deps):
        assert isinstance(await book(booking_deps), Ok)
        assert isinstance(await book(booking_deps, starts_at="2025-01-28T10:30:00"), Ok)

    async def test_other_professional_is_independent(self, booking_deps):
        assert isinstance(await book(booking_deps), Ok)
        assert isinstance(await book(booking_deps, professionalId=OTHER_PROFESSIONAL_ID), Ok)

    async def test_professional_must_offer_service(self, booking_deps):
        result = await book(booking_deps, professionalId=OTHER_PROFESSIONAL_ID, serviceId=LONG_SERVICE_ID)
        assert isinstance(result.error, ProfessionalCannotPerformServiceError)
        assert result.error.kind == INVALID_STATE

    async def test_inactive_professional(self, seeded, booking_deps):
        seeded.get(models.Professional, PROFESSIONAL_ID).is_active = False
        seeded.commit()
        result = await book(booking_deps)
        assert isinstance(result.error, ProfessionalInactiveError)

    async def test_past_start_is_rejected(self, booking_deps):
        result = await book(booking_deps, starts_at="2025-01-27T08:00:00")
        assert isinstance(result.error, PastAppointmentError)

    async def test_unparseable_start(self, booking_deps):
        result = await book(booking_deps, starts_at="amanhã de manhã")
        assert isinstance(result.error, InvalidDateError)

    async def test_unknown_salon_and_customer(self, booking_deps):
        assert isinstance((await book(booking_deps, salonId="nope")).error, SalonNotFoundError)
        assert isinstance((await book(booking_deps, customerId="nope")).error, CustomerNotFoundError)

    async def test_exclusive_save_refuses_lost_race(self, booking_deps, repos):
        """A writer that passed the conflict check late still cannot double book"""
        first = await book(booking_deps)
        stored = await repos["appointments"].find_by_id(first.value.id)

        racer = Appointment.create(
            id="racer",
            salon_id=SALON_ID,
            customer_id=CUSTOMER_ID,
            professional_id=PROFESSIONAL_ID,
            service_id=SERVICE_ID,
            starts_at=stored.starts_at,
            duration=Duration(30),
            now=NOW,
        )
        assert await repos["appointments"].save_exclusive(racer) is False
        assert await repos["appointments"].find_by_id("racer") is None

    async def test_sync_stores_external_ids(self, booking_deps, dispatcher, repos, calendar, scheduler):
        result = await book(booking_deps, dispatcher)

        assert result.value.syncErrors == []
        stored = await repos["appointments"].find_by_id(result.value.id)
        assert stored.google_event_id in calendar.events
        assert stored.trinks_event_id in scheduler.bookings
        assert calendar.events[stored.google_event_id].summary == "Corte Feminino - Maria Silva"

    async def test_provider_failure_keeps_booking(self, booking_deps, dispatcher, repos, calendar):
        calendar.fail_with = RuntimeError("quota exceeded")

        result = await book(booking_deps, dispatcher)

        assert isinstance(result, Ok)
        dto = result.value
        assert [e.provider for e in dto.syncErrors] == ["google"]
        assert dto.message == OUT_OF_SYNC_MESSAGE
        stored = await repos["appointments"].find_by_id(dto.id)
        assert stored is not None
        assert stored.google_event_id is None
        assert stored.trinks_event_id is not None


class TestUpdateAppointment:
    def use_case(self, booking_deps, dispatcher=None):
        return UpdateAppointmentUseCase(*booking_deps, sync_dispatcher=dispatcher, clock=fixed_clock)

    async def test_reschedule_into_own_window(self, booking_deps):
        created = (await book(booking_deps)).value
        result = await self.use_case(booking_deps).execute(
            UpdateAppointmentRequest(appointmentId=created.id, startsAt="2025-01-28T10:15:00")
        )
        assert isinstance(result, Ok)
        assert result.value.startsAt == "28/01/2025 às 10:15"
        assert result.value.endsAt == "28/01/2025 às 10:45"

    async def test_reschedule_onto_other_booking_conflicts(self, booking_deps):
        await book(booking_deps)
        second = (await book(booking_deps, starts_at="2025-01-28T11:00:00")).value

        result = await self.use_case(booking_deps).execute(
            UpdateAppointmentRequest(appointmentId=second.id, startsAt="2025-01-28T10:15:00")
        )
        assert isinstance(result.error, AppointmentConflictError)

    async def test_longer_service_is_checked_for_conflicts(self, booking_deps):
        first = (await book(booking_deps)).value
        await book(booking_deps, starts_at="2025-01-28T11:00:00")

        # 90 minutes from 10:00 runs into the 11:00 booking
        result = await self.use_case(booking_deps).execute(
            UpdateAppointmentRequest(appointmentId=first.id, serviceId=LONG_SERVICE_ID)
        )
        assert isinstance(result.error, AppointmentConflictError)

    async def test_change_professional(self, booking_deps, repos):
        created = (await book(booking_deps)).value
        result = await self.use_case(booking_deps).execute(
            UpdateAppointmentRequest(appointmentId=created.id, professionalId=OTHER_PROFESSIONAL_ID)
        )
        assert result.value.professionalName == "Bruno"
        stored = await repos["appointments"].find_by_id(created.id)
        assert stored.professional_id == OTHER_PROFESSIONAL_ID

    async def test_notes_only_update(self, booking_deps):
        created = (await book(booking_deps)).value
        result = await self.use_case(booking_deps).execute(
            UpdateAppointmentRequest(appointmentId=created.id, notes="Trazer referência")
        )
        assert result.value.notes == "Trazer referência"
        assert result.value.startsAt == created.startsAt

    async def test_cancelled_cannot_be_updated(self, booking_deps):
        created = (await book(booking_deps)).value
        await CancelAppointmentUseCase(*booking_deps, clock=fixed_clock).execute(
            CancelAppointmentRequest(appointmentId=created.id)
        )
        result = await self.use_case(booking_deps).execute(
            UpdateAppointmentRequest(appointmentId=created.id, notes="x")
        )
        assert isinstance(result.error, PastAppointmentError)

    async def test_update_syncs_existing_events(self, booking_deps, dispatcher, calendar, scheduler):
        created = (await book(booking_deps, dispatcher)).value
        calendar.calls.clear()

        await self.use_case(booking_deps, dispatcher).execute(
            UpdateAppointmentRequest(appointmentId=created.id, startsAt="2025-01-28T15:00:00")
        )

        assert calendar.calls == ["update_event"]
        assert "update_appointment" in scheduler.calls
        assert len(calendar.events) == 1

    async def test_unknown_appointment(self, booking_deps):
        result = await self.use_case(booking_deps).execute(UpdateAppointmentRequest(appointmentId="missing"))
        assert isinstance(result.error, AppointmentNotFoundError)

    async def test_update_without_changes_is_rejected(self, booking_deps, dispatcher, calendar):
        created = (await book(booking_deps, dispatcher)).value
        result = await self.use_case(booking_deps, dispatcher).execute(
            UpdateAppointmentRequest(appointmentId=created.id)
        )

        assert isinstance(result.error, RequiredFieldError)
        assert calendar.calls == ["create_event"]


class TestCancelAppointment:
    async def test_cancel_frees_the_slot(self, booking_deps):
        created = (await book(booking_deps)).value
        result = await CancelAppointmentUseCase(*booking_deps, clock=fixed_clock).execute(
            CancelAppointmentRequest(appointmentId=created.id)
        )
        assert result.value.status == "cancelled"
        assert result.value.message == "Agendamento cancelado com sucesso"
        assert isinstance(await book(booking_deps), Ok)

    async def test_cancel_removes_external_copies(self, booking_deps, dispatcher, calendar, scheduler):
        created = (await book(booking_deps, dispatcher)).value
        assert len(calendar.events) == 1

        result = await CancelAppointmentUseCase(*booking_deps, sync_dispatcher=dispatcher, clock=fixed_clock).execute(
            CancelAppointmentRequest(appointmentId=created.id)
        )

        assert result.value.syncErrors == []
        assert calendar.events == {}
        assert scheduler.bookings == {}

    async def test_second_cancel_does_not_resync(self, booking_deps, dispatcher, calendar, scheduler):
        created = (await book(booking_deps, dispatcher)).value
        use_case = CancelAppointmentUseCase(*booking_deps, sync_dispatcher=dispatcher, clock=fixed_clock)

        await use_case.execute(CancelAppointmentRequest(appointmentId=created.id))
        again = await use_case.execute(CancelAppointmentRequest(appointmentId=created.id))

        assert again.value.status == "cancelled"
        assert again.value.message == "Agendamento já estava cancelado"
        assert calendar.calls.count("delete_event") == 1
        assert scheduler.calls.count("delete_appointment") == 1

    async def test_cannot_cancel_past_appointment(self, seeded, booking_deps):
        seeded.add(
            models.Appointment(
                id="old",
                salon_id=SALON_ID,
                customer_id=CUSTOMER_ID,
                professional_id=PROFESSIONAL_ID,
                service_id=SERVICE_ID,
                starts_at=datetime(2025, 1, 20, 13, 0),
                ends_at=datetime(2025, 1, 20, 13, 30),
                status="confirmed",
            )
        )
        seeded.commit()
        result = await CancelAppointmentUseCase(*booking_deps, clock=fixed_clock).execute(
            CancelAppointmentRequest(appointmentId="old")
        )
        assert isinstance(result.error, PastAppointmentError)


class TestUpcomingAppointments:
    def use_case(self, booking_deps):
        return GetUpcomingAppointmentsUseCase(*booking_deps, clock=fixed_clock)

    async def test_by_customer_and_phone(self, booking_deps):
        await book(booking_deps, starts_at="2025-01-29T10:00:00")
        await book(booking_deps)

        by_id = (await self.use_case(booking_deps).execute(
            UpcomingAppointmentsRequest(salonId=SALON_ID, customerId=CUSTOMER_ID)
        )).value
        assert by_id.total == 2
        assert [a.startsAt for a in by_id.appointments] == ["28/01/2025 às 10:00", "29/01/2025 às 10:00"]

        by_phone = (await self.use_case(booking_deps).execute(
            UpcomingAppointmentsRequest(salonId=SALON_ID, phone=f"+55 {CUSTOMER_PHONE}")
        )).value
        assert by_phone.total == 2
        assert by_phone.message == "2 agendamento(s) encontrado(s)"

    async def test_excludes_cancelled(self, booking_deps):
        created = (await book(booking_deps)).value
        await CancelAppointmentUseCase(*booking_deps, clock=fixed_clock).execute(
            CancelAppointmentRequest(appointmentId=created.id)
        )
        result = (await self.use_case(booking_deps).execute(
            UpcomingAppointmentsRequest(salonId=SALON_ID, customerId=CUSTOMER_ID)
        )).value
        assert result.total == 0
        assert result.message == "Não há agendamentos futuros"

    async def test_requires_customer_or_phone(self, booking_deps):
        result = await self.use_case(booking_deps).execute(UpcomingAppointmentsRequest(salonId=SALON_ID))
        assert isinstance(result.error, RequiredFieldError)
