"""Salon domain service - salon details, team listing, working rules and lead qualification"""

import logging
from datetime import datetime
from typing import Callable

from ...shared.result import Err, Ok, Result
from ...shared.time_utils import day_name, utc_now
from ..scheduling.errors import DomainError, ProfessionalNotFoundError, SalonNotFoundError
from ..scheduling.ports import (
    IAvailabilityRepository,
    ILeadRepository,
    IProfessionalRepository,
    ISalonRepository,
    IServiceRepository,
)
from .schemas import (
    AvailabilityRuleDTO,
    AvailabilityRulesRequest,
    LeadDTO,
    ProfessionalAvailabilityRulesDTO,
    ProfessionalDTO,
    ProfessionalListDTO,
    ProfessionalsRequest,
    QualifyLeadRequest,
    SalonDetailsDTO,
    SalonDetailsRequest,
    WorkingHoursSchema,
)

logger = logging.getLogger(__name__)

# Interest level reported by the assistant -> lead pipeline status
LEAD_STATUS_BY_INTEREST = {
    "high": "recently_scheduled",
    "medium": "new",
    "low": "cold",
    "none": "cold",
}

INTEREST_LABELS = {"high": "alto", "medium": "médio", "low": "baixo", "none": "nenhum"}


class GetSalonDetailsUseCase:
    def __init__(self, salon_repo: ISalonRepository, clock: Callable[[], datetime] = utc_now):
        self.salon_repo = salon_repo
        self.clock = clock

    async def execute(self, request: SalonDetailsRequest) -> Result[SalonDetailsDTO, DomainError]:
        salon = await self.salon_repo.find_by_id(request.salonId)
        if not salon:
            return Err(SalonNotFoundError(request.salonId))

        return Ok(
            SalonDetailsDTO(
                id=salon.id,
                name=salon.name,
                address=salon.address,
                phone=salon.phone,
                description=salon.description,
                cancellationPolicy=salon.cancellation_policy,
                isOpenNow=salon.is_open(self.clock()),
                isSoloPlan=salon.is_solo_plan(),
                businessHours={
                    str(day): WorkingHoursSchema(start=hours.start, end=hours.end)
                    for day, hours in sorted(salon.working_hours.items())
                },
                message="Informações do salão recuperadas com sucesso",
            )
        )


class QualifyLeadUseCase:
    """Records the assistant's read on a contact's interest, one lead per (salon, phone)"""

    def __init__(
        self,
        salon_repo: ISalonRepository,
        lead_repo: ILeadRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.salon_repo = salon_repo
        self.lead_repo = lead_repo
        self.clock = clock

    async def execute(self, request: QualifyLeadRequest) -> Result[LeadDTO, DomainError]:
        salon = await self.salon_repo.find_by_id(request.salonId)
        if not salon:
            return Err(SalonNotFoundError(request.salonId))

        status = LEAD_STATUS_BY_INTEREST[request.interest]
        lead = await self.lead_repo.upsert(salon.id, request.phoneNumber, status, request.notes, self.clock())
        logger.info(f"🎯 Lead {lead.id} qualified as {status} for salon {salon.id}")

        return Ok(
            LeadDTO(
                id=lead.id,
                phoneNumber=lead.phone_number,
                status=lead.status,
                notes=lead.notes,
                message=f"Lead qualificado com interesse {INTEREST_LABELS[request.interest]}",
            )
        )


class GetProfessionalsUseCase:
    def __init__(
        self,
        salon_repo: ISalonRepository,
        professional_repo: IProfessionalRepository,
        service_repo: IServiceRepository,
    ):
        self.salon_repo = salon_repo
        self.professional_repo = professional_repo
        self.service_repo = service_repo

    async def execute(self, request: ProfessionalsRequest) -> Result[ProfessionalListDTO, DomainError]:
        salon = await self.salon_repo.find_by_id(request.salonId)
        if not salon:
            return Err(SalonNotFoundError(request.salonId))

        professionals = await self.professional_repo.find_by_salon(salon.id, request.includeInactive)

        # Inactive services still get a name so old assignments stay readable
        services = await self.service_repo.find_by_salon(salon.id, include_inactive=True)
        service_names = {s.id: s.name for s in services}

        dtos = []
        for professional in professionals:
            service_ids = sorted(professional.service_ids)
            dtos.append(
                ProfessionalDTO(
                    id=professional.id,
                    name=professional.name,
                    isActive=professional.is_active,
                    serviceIds=service_ids,
                    services=[service_names[sid] for sid in service_ids if sid in service_names],
                )
            )

        return Ok(
            ProfessionalListDTO(
                professionals=dtos,
                total=len(dtos),
                message=f"{len(dtos)} profissional(is) encontrado(s)",
            )
        )


class GetProfessionalAvailabilityRulesUseCase:
    """
    Weekly working rules of a professional looked up by name.

    The message groups working intervals per day ("Segunda-feira: 09:00-12:00,
    13:00-18:00") so the assistant can read it back as is; breaks are listed in
    ``rules`` but left out of the message.
    """

    def __init__(self, professional_repo: IProfessionalRepository, availability_repo: IAvailabilityRepository):
        self.professional_repo = professional_repo
        self.availability_repo = availability_repo

    async def execute(
        self, request: AvailabilityRulesRequest
    ) -> Result[ProfessionalAvailabilityRulesDTO, DomainError]:
        professional = await self.professional_repo.find_by_name(request.professionalName, request.salonId)
        if not professional:
            return Err(ProfessionalNotFoundError(f'"{request.professionalName}"'))

        rules = await self.availability_repo.find_by_professional(professional.id)
        rule_dtos = [
            AvailabilityRuleDTO(
                dayOfWeek=rule.day_of_week,
                dayName=day_name(rule.day_of_week),
                startTime=rule.start_time,
                endTime=rule.end_time,
                isBreak=rule.is_break,
            )
            for rule in rules
        ]

        work_days: dict[int, list[str]] = {}
        for rule in rule_dtos:
            if rule.isBreak:
                continue
            work_days.setdefault(rule.dayOfWeek, []).append(f"{rule.startTime}-{rule.endTime}")

        if not rule_dtos:
            message = f"{professional.name} não tem horários de trabalho cadastrados"
        else:
            days = "; ".join(f"{day_name(day)}: {', '.join(times)}" for day, times in sorted(work_days.items()))
            message = f"{professional.name} trabalha: {days}"

        return Ok(
            ProfessionalAvailabilityRulesDTO(
                professionalId=professional.id,
                professionalName=professional.name,
                rules=rule_dtos,
                message=message,
            )
        )
