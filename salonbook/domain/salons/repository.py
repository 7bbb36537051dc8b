"""Salon repository - Database operations for salons, leads and provider integrations"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ... import models
from ...config import BUSINESS_TIMEZONE, DEFAULT_END_TIME, DEFAULT_START_TIME
from ...database import insert_ignore_conflict
from ...models_integrations import SalonIntegration
from ...shared.time_utils import from_db, to_db
from ...shared.validators import normalize_phone
from ..scheduling.entities import Lead, Salon, WorkingHours
from ..scheduling.ports import ILeadRepository, ISalonRepository

logger = logging.getLogger(__name__)

# Monday to Saturday, used when a salon never configured its hours
DEFAULT_OPEN_DAYS = (1, 2, 3, 4, 5, 6)

# work_hours is written with day names; older rows use "0".."6"
DAY_KEYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
DAY_INDEX_BY_KEY = {**{name: i for i, name in enumerate(DAY_KEYS)}, **{str(i): i for i in range(7)}}


def _working_hours_from_json(raw) -> dict:
    if raw is None:
        return {day: WorkingHours(DEFAULT_START_TIME, DEFAULT_END_TIME) for day in DEFAULT_OPEN_DAYS}
    if not isinstance(raw, Mapping):
        logger.warning(f"⚠️ Ignoring malformed work_hours of type {type(raw).__name__}, using defaults")
        return _working_hours_from_json(None)

    hours = {}
    for key, value in raw.items():
        day = DAY_INDEX_BY_KEY.get(str(key).strip().lower())
        if day is None:
            logger.warning(f"⚠️ Ignoring working hours for unknown day {key!r}")
            continue
        if not value:
            continue
        if not isinstance(value, Mapping):
            logger.warning(f"⚠️ Ignoring invalid working hours for day {key}: {value!r}")
            continue
        if not value.get("start") or not value.get("end"):
            continue
        try:
            hours[day] = WorkingHours(value["start"], value["end"])
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring invalid working hours for day {key}: {e}")
    return hours


def _working_hours_to_json(hours) -> dict:
    return {DAY_KEYS[day]: {"start": h.start, "end": h.end} for day, h in sorted(hours.items())}


def salon_from_row(row: models.Salon) -> Salon:
    return Salon(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        slug=row.slug,
        address=row.address,
        phone=row.phone,
        description=row.description,
        timezone=row.timezone or BUSINESS_TIMEZONE,
        working_hours=_working_hours_from_json(row.work_hours),
        settings=dict(row.settings or {}),
        plan=row.plan or "trial",
    )


def lead_from_row(row: models.Lead) -> Lead:
    return Lead(
        id=row.id,
        salon_id=row.salon_id,
        phone_number=row.phone_number,
        status=row.status or "new",
        notes=row.notes,
        last_contact_at=from_db(row.last_contact_at),
    )


class SalonRepository(ISalonRepository):
    """Repository for salon database operations"""

    def __init__(self, db: Session):
        self.db = db

    async def find_by_id(self, salon_id: str) -> Optional[Salon]:
        row = self.db.query(models.Salon).filter(models.Salon.id == salon_id).first()
        return salon_from_row(row) if row else None

    async def find_by_slug(self, slug: str) -> Optional[Salon]:
        row = self.db.query(models.Salon).filter(models.Salon.slug == slug).first()
        return salon_from_row(row) if row else None

    async def find_by_owner(self, owner_id: str) -> list[Salon]:
        rows = (
            self.db.query(models.Salon)
            .filter(models.Salon.owner_id == owner_id)
            .order_by(models.Salon.created_at)
            .all()
        )
        return [salon_from_row(r) for r in rows]

    async def save(self, salon: Salon) -> Salon:
        row = self.db.get(models.Salon, salon.id)
        if row is None:
            row = models.Salon(id=salon.id)
            self.db.add(row)
        row.owner_id = salon.owner_id
        row.name = salon.name
        row.slug = salon.slug
        row.address = salon.address
        row.phone = salon.phone
        row.description = salon.description
        row.timezone = salon.timezone
        row.work_hours = _working_hours_to_json(salon.working_hours)
        row.settings = dict(salon.settings)
        row.plan = salon.plan
        self.db.commit()
        self.db.refresh(row)
        return salon_from_row(row)


class LeadRepository(ILeadRepository):
    """Repository for leads, unique per (salon, phone)"""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, phone: str, salon_id: str) -> Optional[models.Lead]:
        return (
            self.db.query(models.Lead)
            .filter(models.Lead.salon_id == salon_id, models.Lead.phone_number == phone)
            .first()
        )

    async def find_by_phone(self, phone: str, salon_id: str) -> Optional[Lead]:
        row = self._row(normalize_phone(phone), salon_id)
        return lead_from_row(row) if row else None

    async def upsert(self, salon_id: str, phone: str, status: str, notes: Optional[str], now: datetime) -> Lead:
        phone = normalize_phone(phone)
        insert_ignore_conflict(
            self.db,
            models.Lead,
            {
                "id": models.generate_id(),
                "salon_id": salon_id,
                "phone_number": phone,
                "status": status,
                "notes": notes,
                "last_contact_at": to_db(now),
            },
            index_elements=["salon_id", "phone_number"],
        )

        # Whichever insert won, apply the latest qualification on top of it
        row = self._row(phone, salon_id)
        row.status = status
        if notes:
            row.notes = notes
        row.last_contact_at = to_db(now)
        self.db.commit()
        self.db.refresh(row)
        return lead_from_row(row)


class SalonIntegrationRepository:
    """Per-salon provider integrations (Google Calendar tokens, Trinks settings)"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, salon_id: str, provider: str) -> Optional[SalonIntegration]:
        return (
            self.db.query(SalonIntegration)
            .filter(SalonIntegration.salon_id == salon_id, SalonIntegration.provider == provider)
            .first()
        )

    def get_active(self, salon_id: str, provider: str) -> Optional[SalonIntegration]:
        integration = self.get(salon_id, provider)
        if integration and integration.is_active:
            return integration
        return None

    def update_tokens(
        self, integration: SalonIntegration, access_token: str, expires_at: Optional[datetime]
    ) -> SalonIntegration:
        integration.access_token = access_token
        integration.token_expires_at = to_db(expires_at) if expires_at else None
        self.db.commit()
        self.db.refresh(integration)
        return integration
