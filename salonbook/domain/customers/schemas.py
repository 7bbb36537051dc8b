"""Customer domain schemas - Pydantic models for validation"""

from typing import Optional, Union

from pydantic import BaseModel, field_validator


class IdentifyCustomerRequest(BaseModel):
    salonId: str
    phone: str
    name: Optional[str] = None


class IdentifyCustomerDTO(BaseModel):
    id: str
    name: str
    phone: str  # (11) 98765-4321
    found: bool
    created: bool
    identified: bool
    message: str


class SaveCustomerPreferenceRequest(BaseModel):
    salonId: str
    # Customer id, or the customer's phone when the id is unknown
    customerId: str
    key: str
    value: Union[bool, int, float, str]

    @field_validator("key")
    @classmethod
    def validate_key(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Preference key is required")
        return v


class CustomerPreferenceDTO(BaseModel):
    customerId: str
    key: str
    value: Union[bool, int, float, str]
    message: str
