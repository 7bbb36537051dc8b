"""Salon domain schemas - Pydantic models for validation"""

from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import is_valid_br_phone


class WorkingHoursSchema(BaseModel):
    start: str
    end: str


class SalonDetailsRequest(BaseModel):
    salonId: str


class SalonDetailsDTO(BaseModel):
    """Public salon information for the chat and booking pages"""

    id: str
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    cancellationPolicy: Optional[str] = None
    isOpenNow: bool = False
    isSoloPlan: bool = False
    # Keyed by day of week as a string, "0" = Sunday
    businessHours: dict[str, WorkingHoursSchema] = {}
    message: str


class QualifyLeadRequest(BaseModel):
    salonId: str
    phoneNumber: str
    interest: Literal["high", "medium", "low", "none"]
    notes: Optional[str] = None

    @field_validator("phoneNumber")
    @classmethod
    def validate_phone(cls, v):
        if not is_valid_br_phone(v):
            raise ValueError("Invalid phone number")
        return v


class LeadDTO(BaseModel):
    id: str
    phoneNumber: str
    status: str
    notes: Optional[str] = None
    message: str


class ProfessionalsRequest(BaseModel):
    salonId: str
    includeInactive: bool = False


class ProfessionalDTO(BaseModel):
    id: str
    name: str
    isActive: bool
    serviceIds: list[str]
    services: list[str]  # names of the services the professional performs


class ProfessionalListDTO(BaseModel):
    professionals: list[ProfessionalDTO]
    total: int
    message: str


class AvailabilityRulesRequest(BaseModel):
    salonId: str
    professionalName: str

    @field_validator("professionalName")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Professional name is required")
        return v


class AvailabilityRuleDTO(BaseModel):
    dayOfWeek: int  # 0 = Sunday
    dayName: str  # Segunda-feira
    startTime: str
    endTime: str
    isBreak: bool


class ProfessionalAvailabilityRulesDTO(BaseModel):
    professionalId: str
    professionalName: str
    rules: list[AvailabilityRuleDTO]
    message: str
