"""Customer repository - Database operations for salon customers"""

from typing import Optional

from sqlalchemy.orm import Session

from ... import models
from ...database import insert_ignore_conflict
from ...shared.validators import normalize_phone, strip_country_code
from ..scheduling.entities import Customer
from ..scheduling.ports import ICustomerRepository
from ..scheduling.value_objects import Phone


def phone_key(phone: str) -> str:
    """Storage key for a phone: national digits, no country code"""
    return strip_country_code(normalize_phone(phone))


def customer_from_row(row: models.Customer) -> Customer:
    return Customer(
        id=row.id,
        salon_id=row.salon_id,
        phone=Phone.from_persistence(row.phone),
        name=row.name,
        email=row.email,
        preferences=dict(row.preferences or {}),
        ai_preferences=row.ai_preferences,
    )


class CustomerRepository(ICustomerRepository):
    """Repository for customers, unique per (salon, phone)"""

    def __init__(self, db: Session):
        self.db = db

    def _row_by_phone(self, phone: str, salon_id: str) -> Optional[models.Customer]:
        return (
            self.db.query(models.Customer)
            .filter(models.Customer.salon_id == salon_id, models.Customer.phone == phone_key(phone))
            .first()
        )

    async def find_by_id(self, customer_id: str) -> Optional[Customer]:
        row = self.db.query(models.Customer).filter(models.Customer.id == customer_id).first()
        return customer_from_row(row) if row else None

    async def find_by_phone(self, phone: str, salon_id: str) -> Optional[Customer]:
        row = self._row_by_phone(phone, salon_id)
        return customer_from_row(row) if row else None

    async def find_by_salon(self, salon_id: str) -> list[Customer]:
        rows = (
            self.db.query(models.Customer)
            .filter(models.Customer.salon_id == salon_id)
            .order_by(models.Customer.name)
            .all()
        )
        return [customer_from_row(r) for r in rows]

    async def save(self, customer: Customer) -> Customer:
        row = self.db.get(models.Customer, customer.id)
        if row is None:
            row = models.Customer(id=customer.id)
            self.db.add(row)
        row.salon_id = customer.salon_id
        row.phone = phone_key(customer.phone.normalized)
        row.name = customer.name
        row.email = customer.email
        row.preferences = dict(customer.preferences)
        row.ai_preferences = customer.ai_preferences
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return customer_from_row(row)

    async def get_or_create(self, salon_id: str, phone: str, name: Optional[str] = None) -> Customer:
        key = phone_key(phone)
        existing = self._row_by_phone(key, salon_id)
        if existing:
            return customer_from_row(existing)

        insert_ignore_conflict(
            self.db,
            models.Customer,
            {
                "id": models.generate_id(),
                "salon_id": salon_id,
                "phone": key,
                "name": (name or "").strip() or Phone.from_persistence(key).format(),
                "preferences": {},
            },
            index_elements=["salon_id", "phone"],
        )
        return customer_from_row(self._row_by_phone(key, salon_id))
