"""Scheduling domain schemas - Pydantic models for requests and responses"""

from typing import Optional

from pydantic import BaseModel, field_validator


def _strip_notes(v):
    if v is None:
        return v
    v = v.strip()
    return v or None


class CreateAppointmentRequest(BaseModel):
    """Schema for booking a new appointment"""

    salonId: str
    customerId: str
    professionalId: str
    serviceId: str
    # ISO 8601; naive values are salon local time, a bare date means 09:00
    startsAt: str
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return _strip_notes(v)


class UpdateAppointmentRequest(BaseModel):
    """Schema for rescheduling or editing an appointment"""

    appointmentId: str
    professionalId: Optional[str] = None
    serviceId: Optional[str] = None
    startsAt: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return _strip_notes(v)

    def has_changes(self) -> bool:
        return any(v is not None for v in (self.professionalId, self.serviceId, self.startsAt, self.notes))


class CancelAppointmentRequest(BaseModel):
    appointmentId: str


class UpcomingAppointmentsRequest(BaseModel):
    salonId: str
    customerId: Optional[str] = None
    phone: Optional[str] = None


class AvailabilityRequest(BaseModel):
    """Schema for availability queries"""

    salonId: str
    date: str  # YYYY-MM-DD or any ISO instant inside the wanted local day
    professionalId: Optional[str] = None
    serviceId: Optional[str] = None
    serviceDuration: Optional[int] = None
    granularity: Optional[int] = None

    @field_validator("serviceDuration", "granularity")
    @classmethod
    def validate_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError("must be greater than zero")
        return v


class SyncErrorDTO(BaseModel):
    provider: str
    message: str
    code: Optional[str] = None


class AppointmentDTO(BaseModel):
    """Appointment as exposed to the web and chat layers"""

    id: str
    customerName: str
    customerId: str
    professionalName: str
    professionalId: str
    serviceName: str
    serviceId: str
    startsAt: str  # 28/01/2025 às 14:00, salon local
    endsAt: str
    startsAtISO: str  # UTC
    endsAtISO: str
    status: str
    notes: Optional[str] = None
    syncErrors: list[SyncErrorDTO] = []
    message: Optional[str] = None


class UpcomingAppointmentsDTO(BaseModel):
    appointments: list[AppointmentDTO]
    total: int
    message: str


class SlotDTO(BaseModel):
    time: str  # HH:MM, salon local
    available: bool
    professionalId: Optional[str] = None


class AvailabilityDTO(BaseModel):
    date: str  # dd/mm/YYYY
    dateISO: str  # YYYY-MM-DD
    professionalId: Optional[str] = None
    slots: list[SlotDTO]
    totalAvailable: int
    message: str
