"""
Scheduling use cases.

Every use case exposes ``async execute(request) -> Result[DTO, DomainError]``.
Expected failures come back as ``Err``; only infrastructure faults raise.
Integration sync always runs after the internal write and never turns a
successful booking into a failure.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ...config import MAX_ADVANCE_DAYS, SLOT_GRANULARITY_MINUTES
from ...models import generate_id
from ...shared.result import Err, Ok, Result
from ...shared.time_utils import (
    format_date,
    format_datetime,
    format_time,
    iso_utc,
    local_date_of,
    parse_instant,
    parse_local_date,
    utc_now,
)
from .availability_service import AvailabilityService
from .entities import TERMINAL_STATUSES, Appointment, Customer, Professional, Salon, Service
from .errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    CustomerNotFoundError,
    DomainError,
    InvalidDateError,
    OutOfRangeError,
    PastAppointmentError,
    ProfessionalCannotPerformServiceError,
    ProfessionalInactiveError,
    ProfessionalNotFoundError,
    RequiredFieldError,
    SalonNotFoundError,
    ServiceNotBookableError,
    ServiceNotFoundError,
)
from .integration_service import SyncDispatcher, SyncResult
from .ports import (
    AppointmentSyncData,
    IAppointmentRepository,
    ICustomerRepository,
    IProfessionalRepository,
    IServiceRepository,
    ISalonRepository,
)
from .schemas import (
    AppointmentDTO,
    AvailabilityDTO,
    AvailabilityRequest,
    CancelAppointmentRequest,
    CreateAppointmentRequest,
    SlotDTO,
    SyncErrorDTO,
    UpcomingAppointmentsDTO,
    UpcomingAppointmentsRequest,
    UpdateAppointmentRequest,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

OUT_OF_SYNC_MESSAGE = "Agendamento salvo, mas a agenda externa pode estar temporariamente desatualizada"


def build_appointment_dto(
    appointment: Appointment,
    tz: ZoneInfo,
    customer: Optional[Customer] = None,
    professional: Optional[Professional] = None,
    service: Optional[Service] = None,
    sync_result: Optional[SyncResult] = None,
    message: Optional[str] = None,
) -> AppointmentDTO:
    sync_errors = [SyncErrorDTO(**e.to_dict()) for e in sync_result.errors] if sync_result else []
    if sync_errors:
        message = OUT_OF_SYNC_MESSAGE
    return AppointmentDTO(
        id=appointment.id,
        customerName=customer.name if customer else "Cliente",
        customerId=appointment.customer_id,
        professionalName=professional.name if professional else "Profissional",
        professionalId=appointment.professional_id,
        serviceName=service.name if service else "Serviço",
        serviceId=appointment.service_id,
        startsAt=format_datetime(appointment.starts_at, tz),
        endsAt=format_datetime(appointment.ends_at, tz),
        startsAtISO=iso_utc(appointment.starts_at),
        endsAtISO=iso_utc(appointment.ends_at),
        status=appointment.status,
        notes=appointment.notes,
        syncErrors=sync_errors,
        message=message,
    )


def build_sync_data(
    appointment: Appointment,
    customer: Optional[Customer],
    professional: Optional[Professional],
    service: Optional[Service],
) -> AppointmentSyncData:
    return AppointmentSyncData(
        appointment_id=appointment.id,
        salon_id=appointment.salon_id,
        professional_id=appointment.professional_id,
        customer_id=appointment.customer_id,
        service_id=appointment.service_id,
        starts_at=appointment.starts_at,
        ends_at=appointment.ends_at,
        customer_name=customer.name if customer else None,
        customer_phone=customer.phone.normalized if customer else None,
        service_name=service.name if service else None,
        professional_name=professional.name if professional else None,
        notes=appointment.notes,
        google_event_id=appointment.google_event_id,
        trinks_event_id=appointment.trinks_event_id,
        professional_google_calendar_id=professional.google_calendar_id if professional else None,
    )


def _parse_start(raw: str, tz: ZoneInfo) -> Result[datetime, InvalidDateError]:
    try:
        return Ok(parse_instant(raw, tz))
    except (TypeError, ValueError):
        return Err(InvalidDateError(raw))


class CreateAppointmentUseCase:
    """Books an appointment after validating the participants and the internal conflict gate"""

    def __init__(
        self,
        appointment_repo: IAppointmentRepository,
        customer_repo: ICustomerRepository,
        professional_repo: IProfessionalRepository,
        service_repo: IServiceRepository,
        salon_repo: ISalonRepository,
        sync_dispatcher: Optional[SyncDispatcher] = None,
        clock: Clock = utc_now,
    ):
        self.appointment_repo = appointment_repo
        self.customer_repo = customer_repo
        self.professional_repo = professional_repo
        self.service_repo = service_repo
        self.salon_repo = salon_repo
        self.sync_dispatcher = sync_dispatcher
        self.clock = clock

    async def execute(self, request: CreateAppointmentRequest) -> Result[AppointmentDTO, DomainError]:
        salon = await self.salon_repo.find_by_id(request.salonId)
        if not salon:
            return Err(SalonNotFoundError(request.salonId))

        customer = await self.customer_repo.find_by_id(request.customerId)
        if not customer or customer.salon_id != salon.id:
            return Err(CustomerNotFoundError(request.customerId))

        professional = await self.professional_repo.find_by_id(request.professionalId)
        if not professional or professional.salon_id != salon.id:
            return Err(ProfessionalNotFoundError(request.professionalId))
        if not professional.is_available():
            return Err(ProfessionalInactiveError(professional.name))

        service = await self.service_repo.find_by_id(request.serviceId)
        if not service or service.salon_id != salon.id:
            return Err(ServiceNotFoundError(request.serviceId))
        if not service.is_bookable():
            return Err(ServiceNotBookableError(service.name))

        if not professional.can_perform_service(service.id):
            return Err(ProfessionalCannotPerformServiceError(professional.name, service.name))

        parsed = _parse_start(request.startsAt, salon.zone)
        if isinstance(parsed, Err):
            return parsed
        starts_at = parsed.value

        now = self.clock()
        if starts_at < now:
            return Err(PastAppointmentError("Não é possível agendar para um horário passado"))

        appointment = Appointment.create(
            id=generate_id(),
            salon_id=salon.id,
            customer_id=customer.id,
            professional_id=professional.id,
            service_id=service.id,
            starts_at=starts_at,
            duration=service.duration,
            notes=request.notes,
            now=now,
        )

        conflicts = await self.appointment_repo.find_conflicting(
            professional.id, appointment.starts_at, appointment.ends_at
        )
        if conflicts:
            logger.info(f"⛔ Conflict booking {professional.id} at {iso_utc(starts_at)}")
            return Err(AppointmentConflictError())

        if not await self.appointment_repo.save_exclusive(appointment):
            logger.info(f"⛔ Lost booking race for {professional.id} at {iso_utc(starts_at)}")
            return Err(AppointmentConflictError())

        logger.info(f"✅ Appointment {appointment.id} created for salon {salon.id}")

        sync_result = None
        if self.sync_dispatcher:
            sync_result = await self.sync_dispatcher.dispatch(
                "create", build_sync_data(appointment, customer, professional, service)
            )

        return Ok(
            build_appointment_dto(
                appointment,
                salon.zone,
                customer,
                professional,
                service,
                sync_result,
                message="Agendamento criado com sucesso",
            )
        )


class UpdateAppointmentUseCase:
    """Reschedules, reassigns or edits an appointment as one save"""

    def __init__(
        self,
        appointment_repo: IAppointmentRepository,
        customer_repo: ICustomerRepository,
        professional_repo: IProfessionalRepository,
        service_repo: IServiceRepository,
        salon_repo: ISalonRepository,
        sync_dispatcher: Optional[SyncDispatcher] = None,
        clock: Clock = utc_now,
    ):
        self.appointment_repo = appointment_repo
        self.customer_repo = customer_repo
        self.professional_repo = professional_repo
        self.service_repo = service_repo
        self.salon_repo = salon_repo
        self.sync_dispatcher = sync_dispatcher
        self.clock = clock

    async def execute(self, request: UpdateAppointmentRequest) -> Result[AppointmentDTO, DomainError]:
        appointment = await self.appointment_repo.find_by_id(request.appointmentId)
        if not appointment:
            return Err(AppointmentNotFoundError(request.appointmentId))
        if not request.has_changes():
            return Err(RequiredFieldError("professionalId, serviceId, startsAt ou notes"))

        salon = await self.salon_repo.find_by_id(appointment.salon_id)
        if not salon:
            return Err(SalonNotFoundError(appointment.salon_id))

        now = self.clock()
        if appointment.status in TERMINAL_STATUSES:
            return Err(PastAppointmentError("Não é possível modificar um agendamento cancelado ou concluído"))
        if not appointment.can_be_modified(now):
            return Err(PastAppointmentError())

        professional_changed = bool(request.professionalId) and request.professionalId != appointment.professional_id
        service_changed = bool(request.serviceId) and request.serviceId != appointment.service_id

        professional = await self.professional_repo.find_by_id(request.professionalId or appointment.professional_id)
        if not professional or professional.salon_id != salon.id:
            return Err(ProfessionalNotFoundError(request.professionalId or appointment.professional_id))
        if professional_changed and not professional.is_available():
            return Err(ProfessionalInactiveError(professional.name))

        service = await self.service_repo.find_by_id(request.serviceId or appointment.service_id)
        if not service or service.salon_id != salon.id:
            return Err(ServiceNotFoundError(request.serviceId or appointment.service_id))
        if service_changed and not service.is_bookable():
            return Err(ServiceNotBookableError(service.name))

        if (professional_changed or service_changed) and not professional.can_perform_service(service.id):
            return Err(ProfessionalCannotPerformServiceError(professional.name, service.name))

        duration = service.duration if service_changed else appointment.duration
        starts_at = appointment.starts_at
        if request.startsAt:
            parsed = _parse_start(request.startsAt, salon.zone)
            if isinstance(parsed, Err):
                return parsed
            starts_at = parsed.value
        start_changed = starts_at != appointment.starts_at

        updated = appointment
        if service_changed:
            result = updated.change_service(service.id, duration, now)
            if isinstance(result, Err):
                return result
            updated = result.value
        if professional_changed:
            result = updated.change_professional(professional.id, now)
            if isinstance(result, Err):
                return result
            updated = result.value
        if start_changed:
            result = updated.reschedule(starts_at, starts_at + timedelta(minutes=duration.minutes), now)
            if isinstance(result, Err):
                return result
            updated = result.value
        if request.notes is not None:
            updated = updated.with_notes(request.notes, now)

        schedule_changed = professional_changed or service_changed or start_changed
        if schedule_changed:
            conflicts = await self.appointment_repo.find_conflicting(
                updated.professional_id, updated.starts_at, updated.ends_at, exclude_id=updated.id
            )
            if conflicts:
                return Err(AppointmentConflictError())
            if not await self.appointment_repo.save_exclusive(updated):
                return Err(AppointmentConflictError())
        else:
            updated = await self.appointment_repo.save(updated)

        logger.info(f"✅ Appointment {updated.id} updated")

        customer = await self.customer_repo.find_by_id(updated.customer_id)
        sync_result = None
        if self.sync_dispatcher and (schedule_changed or request.notes is not None):
            sync_result = await self.sync_dispatcher.dispatch(
                "update", build_sync_data(updated, customer, professional, service)
            )

        return Ok(
            build_appointment_dto(
                updated,
                salon.zone,
                customer,
                professional,
                service,
                sync_result,
                message="Agendamento atualizado com sucesso",
            )
        )


class CancelAppointmentUseCase:
    """Soft-cancels an appointment and removes its external copies"""

    def __init__(
        self,
        appointment_repo: IAppointmentRepository,
        customer_repo: ICustomerRepository,
        professional_repo: IProfessionalRepository,
        service_repo: IServiceRepository,
        salon_repo: ISalonRepository,
        sync_dispatcher: Optional[SyncDispatcher] = None,
        clock: Clock = utc_now,
    ):
        self.appointment_repo = appointment_repo
        self.customer_repo = customer_repo
        self.professional_repo = professional_repo
        self.service_repo = service_repo
        self.salon_repo = salon_repo
        self.sync_dispatcher = sync_dispatcher
        self.clock = clock

    async def execute(self, request: CancelAppointmentRequest) -> Result[AppointmentDTO, DomainError]:
        appointment = await self.appointment_repo.find_by_id(request.appointmentId)
        if not appointment:
            return Err(AppointmentNotFoundError(request.appointmentId))
        if appointment.status == "completed":
            return Err(PastAppointmentError("Não é possível cancelar um agendamento concluído"))

        salon = await self.salon_repo.find_by_id(appointment.salon_id)
        if not salon:
            return Err(SalonNotFoundError(appointment.salon_id))

        if appointment.is_cancelled:
            # Remote copies were already removed by the first cancellation
            logger.info(f"ℹ️ Appointment {appointment.id} was already cancelled")
            return Ok(
                build_appointment_dto(
                    appointment,
                    salon.zone,
                    await self.customer_repo.find_by_id(appointment.customer_id),
                    await self.professional_repo.find_by_id(appointment.professional_id),
                    await self.service_repo.find_by_id(appointment.service_id),
                    message="Agendamento já estava cancelado",
                )
            )

        result = appointment.cancel(self.clock())
        if isinstance(result, Err):
            return result
        cancelled = await self.appointment_repo.save(result.value)
        logger.info(f"🗑️ Appointment {cancelled.id} cancelled")

        customer = await self.customer_repo.find_by_id(cancelled.customer_id)
        professional = await self.professional_repo.find_by_id(cancelled.professional_id)
        service = await self.service_repo.find_by_id(cancelled.service_id)

        sync_result = None
        if self.sync_dispatcher and (cancelled.google_event_id or cancelled.trinks_event_id):
            sync_result = await self.sync_dispatcher.dispatch(
                "delete", build_sync_data(cancelled, customer, professional, service)
            )

        return Ok(
            build_appointment_dto(
                cancelled,
                salon.zone,
                customer,
                professional,
                service,
                sync_result,
                message="Agendamento cancelado com sucesso",
            )
        )


class GetUpcomingAppointmentsUseCase:
    def __init__(
        self,
        appointment_repo: IAppointmentRepository,
        customer_repo: ICustomerRepository,
        professional_repo: IProfessionalRepository,
        service_repo: IServiceRepository,
        salon_repo: ISalonRepository,
        clock: Clock = utc_now,
    ):
        self.appointment_repo = appointment_repo
        self.customer_repo = customer_repo
        self.professional_repo = professional_repo
        self.service_repo = service_repo
        self.salon_repo = salon_repo
        self.clock = clock

    async def execute(self, request: UpcomingAppointmentsRequest) -> Result[UpcomingAppointmentsDTO, DomainError]:
        salon = await self.salon_repo.find_by_id(request.salonId)
        if not salon:
            return Err(SalonNotFoundError(request.salonId))

        now = self.clock()
        if request.customerId:
            appointments = await self.appointment_repo.find_upcoming(request.customerId, salon.id, now)
        elif request.phone:
            appointments = await self.appointment_repo.find_upcoming_by_phone(request.phone, salon.id, now)
        else:
            return Err(RequiredFieldError("customerId ou phone"))

        # Resolve names once per distinct id
        customers = {cid: await self.customer_repo.find_by_id(cid) for cid in {a.customer_id for a in appointments}}
        professionals = {
            pid: await self.professional_repo.find_by_id(pid) for pid in {a.professional_id for a in appointments}
        }
        services = {sid: await self.service_repo.find_by_id(sid) for sid in {a.service_id for a in appointments}}

        dtos = [
            build_appointment_dto(
                a,
                salon.zone,
                customers.get(a.customer_id),
                professionals.get(a.professional_id),
                services.get(a.service_id),
            )
            for a in appointments
        ]
        message = "Não há agendamentos futuros" if not dtos else f"{len(dtos)} agendamento(s) encontrado(s)"
        return Ok(UpcomingAppointmentsDTO(appointments=dtos, total=len(dtos), message=message))


class _AvailabilityQuery:
    """Shared orchestration for the availability use cases"""

    only_available = False

    def __init__(
        self,
        availability_service: AvailabilityService,
        salon_repo: ISalonRepository,
        service_repo: IServiceRepository,
        professional_repo: IProfessionalRepository,
        clock: Clock = utc_now,
    ):
        self.availability_service = availability_service
        self.salon_repo = salon_repo
        self.service_repo = service_repo
        self.professional_repo = professional_repo
        self.clock = clock

    async def _resolve_duration(self, request: AvailabilityRequest) -> Result[int, DomainError]:
        if request.serviceDuration:
            return Ok(request.serviceDuration)
        if request.serviceId:
            service = await self.service_repo.find_by_id(request.serviceId)
            if not service or service.salon_id != request.salonId:
                return Err(ServiceNotFoundError(request.serviceId))
            return Ok(service.duration_minutes)
        return Ok(request.granularity or SLOT_GRANULARITY_MINUTES)

    def _check_window(self, day, salon: Salon, now: datetime) -> Optional[DomainError]:
        today = local_date_of(now, salon.zone)
        if day < today:
            return InvalidDateError(day.isoformat())
        if day > today + timedelta(days=MAX_ADVANCE_DAYS):
            return OutOfRangeError("date", 0, MAX_ADVANCE_DAYS)
        return None

    async def execute(self, request: AvailabilityRequest) -> Result[AvailabilityDTO, DomainError]:
        salon = await self.salon_repo.find_by_id(request.salonId)
        if not salon:
            return Err(SalonNotFoundError(request.salonId))

        try:
            day = parse_local_date(request.date, salon.zone)
        except (TypeError, ValueError):
            return Err(InvalidDateError(request.date))

        now = self.clock()
        window_error = self._check_window(day, salon, now)
        if window_error:
            return Err(window_error)

        duration = await self._resolve_duration(request)
        if isinstance(duration, Err):
            return duration

        if request.professionalId:
            professional = await self.professional_repo.find_by_id(request.professionalId)
            if not professional or professional.salon_id != salon.id:
                return Err(ProfessionalNotFoundError(request.professionalId))
            slots = await self.availability_service.build_timeline(
                salon.id, professional.id, day, duration.value, request.granularity, now
            )
        else:
            slots = await self.availability_service.build_salon_timeline(
                salon.id, day, duration.value, request.granularity, now
            )

        total_available = sum(1 for s in slots if s.available)
        if self.only_available:
            slots = [s for s in slots if s.available]

        message = (
            "Não há horários disponíveis nesta data"
            if total_available == 0
            else f"{total_available} horário(s) disponível(is)"
        )
        logger.info(f"📅 {total_available} slot(s) available on {day.isoformat()} for salon {salon.id}")

        return Ok(
            AvailabilityDTO(
                date=format_date(day),
                dateISO=day.isoformat(),
                professionalId=request.professionalId,
                slots=[
                    SlotDTO(
                        time=format_time(s.start, salon.zone),
                        available=s.available,
                        professionalId=s.professional_id,
                    )
                    for s in slots
                ],
                totalAvailable=total_available,
                message=message,
            )
        )


class CheckAvailabilityUseCase(_AvailabilityQuery):
    """Every slot of the day with its availability flag"""


class GetAvailableSlotsUseCase(_AvailabilityQuery):
    """Only the bookable slots of the day"""

    only_available = True
