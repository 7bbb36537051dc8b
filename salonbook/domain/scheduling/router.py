"""Scheduling router - FastAPI endpoints over the scheduling use cases"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from ...container import Container
from ...database import get_db
from ...shared.result import Err
from ..customers.schemas import (
    CustomerPreferenceDTO,
    IdentifyCustomerDTO,
    IdentifyCustomerRequest,
    SaveCustomerPreferenceRequest,
)
from ..salons.schemas import (
    AvailabilityRulesRequest,
    LeadDTO,
    ProfessionalAvailabilityRulesDTO,
    ProfessionalListDTO,
    ProfessionalsRequest,
    QualifyLeadRequest,
    SalonDetailsDTO,
    SalonDetailsRequest,
)
from .errors import CONFLICT, INVALID_STATE, NOT_FOUND, VALIDATION
from .schemas import (
    AppointmentDTO,
    AvailabilityDTO,
    AvailabilityRequest,
    CancelAppointmentRequest,
    CreateAppointmentRequest,
    UpcomingAppointmentsDTO,
    UpcomingAppointmentsRequest,
    UpdateAppointmentRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])

STATUS_BY_KIND = {
    NOT_FOUND: 404,
    CONFLICT: 409,
    INVALID_STATE: 422,
    VALIDATION: 400,
}


def get_container(background_tasks: BackgroundTasks, db: Session = Depends(get_db)) -> Container:
    """Dependency injection for the per-request container"""
    return Container(db, schedule=background_tasks.add_task)


def unwrap_or_raise(result):
    """Return the Ok value or raise the matching HTTPException"""
    if isinstance(result, Err):
        error = result.error
        status_code = STATUS_BY_KIND.get(error.kind, 400)
        logger.info(f"⚠️ Request rejected ({status_code}): {error.code} - {error.message}")
        raise HTTPException(status_code=status_code, detail=error.to_dict())
    return result.value


# ============================================================================
# APPOINTMENTS
# ============================================================================


@router.post("/appointments", response_model=AppointmentDTO, status_code=201)
async def create_appointment(data: CreateAppointmentRequest, container: Container = Depends(get_container)):
    """Book an appointment; provider sync happens after the booking is stored"""
    return unwrap_or_raise(await container.create_appointment().execute(data))


@router.patch("/appointments", response_model=AppointmentDTO)
async def update_appointment(data: UpdateAppointmentRequest, container: Container = Depends(get_container)):
    """Reschedule or edit; any schedule change goes through the conflict check again"""
    return unwrap_or_raise(await container.update_appointment().execute(data))


@router.post("/appointments/cancel", response_model=AppointmentDTO)
async def cancel_appointment(data: CancelAppointmentRequest, container: Container = Depends(get_container)):
    return unwrap_or_raise(await container.cancel_appointment().execute(data))


@router.post("/appointments/upcoming", response_model=UpcomingAppointmentsDTO)
async def get_upcoming_appointments(
    data: UpcomingAppointmentsRequest, container: Container = Depends(get_container)
):
    return unwrap_or_raise(await container.upcoming_appointments().execute(data))


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.post("/availability", response_model=AvailabilityDTO)
async def check_availability(data: AvailabilityRequest, container: Container = Depends(get_container)):
    """Full timeline of the day, free and busy slots alike"""
    return unwrap_or_raise(await container.check_availability().execute(data))


@router.post("/availability/slots", response_model=AvailabilityDTO)
async def get_available_slots(data: AvailabilityRequest, container: Container = Depends(get_container)):
    """Only the bookable start times"""
    return unwrap_or_raise(await container.available_slots().execute(data))


# ============================================================================
# SALONS, LEADS AND CUSTOMERS
# ============================================================================


@router.get("/salons/{salon_id}", response_model=SalonDetailsDTO)
async def get_salon_details(salon_id: str, container: Container = Depends(get_container)):
    return unwrap_or_raise(await container.salon_details().execute(SalonDetailsRequest(salonId=salon_id)))


@router.get("/salons/{salon_id}/professionals", response_model=ProfessionalListDTO)
async def list_professionals(
    salon_id: str, includeInactive: bool = False, container: Container = Depends(get_container)
):
    request = ProfessionalsRequest(salonId=salon_id, includeInactive=includeInactive)
    return unwrap_or_raise(await container.list_professionals().execute(request))


@router.post("/professionals/availability-rules", response_model=ProfessionalAvailabilityRulesDTO)
async def get_professional_availability_rules(
    data: AvailabilityRulesRequest, container: Container = Depends(get_container)
):
    """Weekly working hours of a professional, looked up by name"""
    return unwrap_or_raise(await container.professional_availability_rules().execute(data))


@router.post("/leads/qualify", response_model=LeadDTO)
async def qualify_lead(data: QualifyLeadRequest, container: Container = Depends(get_container)):
    return unwrap_or_raise(await container.qualify_lead().execute(data))


@router.post("/customers/identify", response_model=IdentifyCustomerDTO)
async def identify_customer(data: IdentifyCustomerRequest, container: Container = Depends(get_container)):
    return unwrap_or_raise(await container.identify_customer().execute(data))


@router.post("/customers/preferences", response_model=CustomerPreferenceDTO)
async def save_customer_preference(
    data: SaveCustomerPreferenceRequest, container: Container = Depends(get_container)
):
    return unwrap_or_raise(await container.save_customer_preference().execute(data))
