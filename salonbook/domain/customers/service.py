"""Customer domain service - identify contacts by phone and remember their preferences"""

import logging

from ...shared.result import Err, Ok, Result
from ..scheduling.errors import CustomerNotFoundError, DomainError, SalonNotFoundError
from ..scheduling.ports import ICustomerRepository, ISalonRepository
from ..scheduling.value_objects import Phone
from .schemas import (
    CustomerPreferenceDTO,
    IdentifyCustomerDTO,
    IdentifyCustomerRequest,
    SaveCustomerPreferenceRequest,
)

logger = logging.getLogger(__name__)


class IdentifyCustomerUseCase:
    """
    Finds the customer behind a phone number, registering them when a name is known.

    Creation goes through the repository's idempotent get-or-create, so two
    conversations starting at once for the same number end with one customer.
    """

    def __init__(self, customer_repo: ICustomerRepository, salon_repo: ISalonRepository):
        self.customer_repo = customer_repo
        self.salon_repo = salon_repo

    async def execute(self, request: IdentifyCustomerRequest) -> Result[IdentifyCustomerDTO, DomainError]:
        phone_result = Phone.create(request.phone)
        if isinstance(phone_result, Err):
            return phone_result
        phone = phone_result.value

        salon = await self.salon_repo.find_by_id(request.salonId)
        if not salon:
            return Err(SalonNotFoundError(request.salonId))

        existing = await self.customer_repo.find_by_phone(phone.normalized, salon.id)
        if existing:
            if request.name and not existing.is_identified():
                renamed = existing.with_name(request.name)
                if isinstance(renamed, Ok):
                    existing = await self.customer_repo.save(renamed.value)
            return Ok(
                IdentifyCustomerDTO(
                    id=existing.id,
                    name=existing.name,
                    phone=existing.phone.format(),
                    found=True,
                    created=False,
                    identified=existing.is_identified(),
                    message=f"Cliente encontrado: {existing.name}",
                )
            )

        if not request.name or not request.name.strip():
            return Ok(
                IdentifyCustomerDTO(
                    id="",
                    name="",
                    phone=phone.format(),
                    found=False,
                    created=False,
                    identified=False,
                    message="Cliente não encontrado. Forneça o nome para cadastrar.",
                )
            )

        customer = await self.customer_repo.get_or_create(salon.id, phone.normalized, request.name)
        logger.info(f"👤 Customer {customer.id} registered for salon {salon.id}")
        return Ok(
            IdentifyCustomerDTO(
                id=customer.id,
                name=customer.name,
                phone=customer.phone.format(),
                found=False,
                created=True,
                identified=customer.is_identified(),
                message=f"Novo cliente criado: {customer.name}",
            )
        )


class SaveCustomerPreferenceUseCase:
    def __init__(self, customer_repo: ICustomerRepository):
        self.customer_repo = customer_repo

    async def execute(self, request: SaveCustomerPreferenceRequest) -> Result[CustomerPreferenceDTO, DomainError]:
        customer = await self.customer_repo.find_by_id(request.customerId)
        if not customer or customer.salon_id != request.salonId:
            # The assistant sometimes only knows the phone number
            customer = await self.customer_repo.find_by_phone(request.customerId, request.salonId)
        if not customer:
            return Err(CustomerNotFoundError(request.customerId))

        customer = await self.customer_repo.save(customer.with_preference(request.key, request.value))
        logger.info(f"📝 Preference '{request.key}' saved for customer {customer.id}")

        return Ok(
            CustomerPreferenceDTO(
                customerId=customer.id,
                key=request.key,
                value=request.value,
                message=f'Preferência "{request.key}" salva com sucesso',
            )
        )
