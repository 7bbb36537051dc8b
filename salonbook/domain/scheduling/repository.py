"""Scheduling repository - SQLAlchemy implementations of the scheduling ports"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ... import models
from ...shared.time_utils import day_of_week, from_db, local_day_bounds, to_db
from ...shared.validators import normalize_phone, strip_country_code
from .entities import Appointment, AvailabilityRule, Professional, ScheduleOverride, Service, TimeSlot
from .ports import IAppointmentRepository, IAvailabilityRepository, IProfessionalRepository, IServiceRepository
from .time_calculator import generate_slots_from_rules
from .value_objects import Duration, Money

logger = logging.getLogger(__name__)


def appointment_from_row(row: models.Appointment) -> Appointment:
    return Appointment(
        id=row.id,
        salon_id=row.salon_id,
        customer_id=row.customer_id,
        professional_id=row.professional_id,
        service_id=row.service_id,
        starts_at=from_db(row.starts_at),
        ends_at=from_db(row.ends_at),
        status=row.status or "pending",
        notes=row.notes,
        google_event_id=row.google_event_id,
        trinks_event_id=row.trinks_event_id,
        created_at=from_db(row.created_at),
        updated_at=from_db(row.updated_at),
    )


def professional_from_row(row: models.Professional) -> Professional:
    return Professional(
        id=row.id,
        salon_id=row.salon_id,
        name=row.name,
        user_id=row.user_id,
        email=row.email,
        phone=row.phone,
        role=row.role or "STAFF",
        is_active=bool(row.is_active),
        service_ids=frozenset(s.id for s in row.services),
        google_calendar_id=row.google_calendar_id,
    )


def _money(value) -> Optional[Money]:
    if value is None:
        return None
    return Money.of(Decimal(str(value)))


def service_from_row(row: models.Service) -> Service:
    return Service(
        id=row.id,
        salon_id=row.salon_id,
        name=row.name,
        description=row.description,
        duration=Duration.from_minutes(row.duration_minutes),
        price=_money(row.price) or Money.zero(),
        price_type=row.price_type or "fixed",
        price_min=_money(row.price_min),
        price_max=_money(row.price_max),
        is_active=bool(row.is_active),
    )


def rule_from_row(row: models.AvailabilityRule) -> AvailabilityRule:
    return AvailabilityRule(
        id=row.id,
        professional_id=row.professional_id,
        day_of_week=row.day_of_week,
        start_time=row.start_time,
        end_time=row.end_time,
        is_break=bool(row.is_break),
    )


def override_from_row(row: models.ScheduleOverride) -> ScheduleOverride:
    return ScheduleOverride(
        id=row.id,
        salon_id=row.salon_id,
        professional_id=row.professional_id,
        start=from_db(row.start_time),
        end=from_db(row.end_time),
        reason=row.reason,
    )


class AppointmentRepository(IAppointmentRepository):
    """Repository for appointment database operations"""

    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return self.db.query(models.Appointment).filter(models.Appointment.status != "cancelled")

    def _overlapping(self, professional_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None):
        query = self._active().filter(
            models.Appointment.professional_id == professional_id,
            models.Appointment.starts_at < to_db(end),
            models.Appointment.ends_at > to_db(start),
        )
        if exclude_id:
            query = query.filter(models.Appointment.id != exclude_id)
        return query

    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        row = self.db.query(models.Appointment).filter(models.Appointment.id == appointment_id).first()
        return appointment_from_row(row) if row else None

    async def find_by_professional_and_date(
        self, professional_id: str, day: date, tz: ZoneInfo
    ) -> list[Appointment]:
        day_start, day_end = local_day_bounds(day, tz)
        rows = (
            self._overlapping(professional_id, day_start, day_end)
            .order_by(models.Appointment.starts_at)
            .all()
        )
        return [appointment_from_row(r) for r in rows]

    async def find_conflicting(
        self, professional_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        rows = self._overlapping(professional_id, start, end, exclude_id).all()
        return [appointment_from_row(r) for r in rows]

    async def find_by_customer(self, customer_id: str) -> list[Appointment]:
        rows = (
            self.db.query(models.Appointment)
            .filter(models.Appointment.customer_id == customer_id)
            .order_by(models.Appointment.starts_at.desc())
            .all()
        )
        return [appointment_from_row(r) for r in rows]

    async def find_upcoming(self, customer_id: str, salon_id: str, now: datetime) -> list[Appointment]:
        rows = (
            self._active()
            .filter(
                models.Appointment.customer_id == customer_id,
                models.Appointment.salon_id == salon_id,
                models.Appointment.starts_at > to_db(now),
            )
            .order_by(models.Appointment.starts_at)
            .all()
        )
        return [appointment_from_row(r) for r in rows]

    async def find_upcoming_by_phone(self, phone: str, salon_id: str, now: datetime) -> list[Appointment]:
        national = strip_country_code(normalize_phone(phone))
        if not national:
            return []
        rows = (
            self._active()
            .join(models.Customer, models.Customer.id == models.Appointment.customer_id)
            .filter(
                models.Customer.salon_id == salon_id,
                models.Customer.phone.in_([national, f"55{national}"]),
                models.Appointment.salon_id == salon_id,
                models.Appointment.starts_at > to_db(now),
            )
            .order_by(models.Appointment.starts_at)
            .all()
        )
        return [appointment_from_row(r) for r in rows]

    def _write(self, appointment: Appointment) -> models.Appointment:
        row = self.db.get(models.Appointment, appointment.id)
        if row is None:
            row = models.Appointment(id=appointment.id)
            self.db.add(row)
        row.salon_id = appointment.salon_id
        row.customer_id = appointment.customer_id
        row.professional_id = appointment.professional_id
        row.service_id = appointment.service_id
        row.starts_at = to_db(appointment.starts_at)
        row.ends_at = to_db(appointment.ends_at)
        row.status = appointment.status
        row.notes = appointment.notes
        row.google_event_id = appointment.google_event_id
        row.trinks_event_id = appointment.trinks_event_id
        return row

    async def save(self, appointment: Appointment) -> Appointment:
        try:
            row = self._write(appointment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return appointment_from_row(row)

    async def save_exclusive(self, appointment: Appointment) -> bool:
        """
        Save only if no other active appointment overlaps, holding a lock on the
        professional row so concurrent bookings for them are serialized.
        """
        try:
            (
                self.db.query(models.Professional)
                .filter(models.Professional.id == appointment.professional_id)
                .with_for_update()
                .first()
            )
            if self._overlapping(
                appointment.professional_id, appointment.starts_at, appointment.ends_at, exclude_id=appointment.id
            ).first():
                self.db.rollback()
                return False
            self._write(appointment)
            self.db.commit()
            return True
        except Exception:
            self.db.rollback()
            raise

    async def update_external_ids(
        self,
        appointment_id: str,
        google_event_id: Optional[str] = None,
        trinks_event_id: Optional[str] = None,
    ) -> None:
        row = self.db.get(models.Appointment, appointment_id)
        if row is None:
            logger.warning(f"⚠️ Appointment {appointment_id} vanished before storing external ids")
            return
        if google_event_id:
            row.google_event_id = google_event_id
        if trinks_event_id:
            row.trinks_event_id = trinks_event_id
        self.db.commit()

    async def delete(self, appointment_id: str) -> None:
        self.db.query(models.Appointment).filter(models.Appointment.id == appointment_id).delete()
        self.db.commit()


class AvailabilityRepository(IAvailabilityRepository):
    """Repository for availability rules and schedule overrides"""

    def __init__(self, db: Session):
        self.db = db

    async def find_by_professional(self, professional_id: str) -> list[AvailabilityRule]:
        rows = (
            self.db.query(models.AvailabilityRule)
            .filter(models.AvailabilityRule.professional_id == professional_id)
            .order_by(models.AvailabilityRule.day_of_week, models.AvailabilityRule.start_time)
            .all()
        )
        return [rule_from_row(r) for r in rows]

    async def find_by_professional_and_day(self, professional_id: str, day_of_week: int) -> list[AvailabilityRule]:
        rows = (
            self.db.query(models.AvailabilityRule)
            .filter(
                models.AvailabilityRule.professional_id == professional_id,
                models.AvailabilityRule.day_of_week == day_of_week,
            )
            .order_by(models.AvailabilityRule.start_time)
            .all()
        )
        return [rule_from_row(r) for r in rows]

    async def find_overrides(self, salon_id: str, start: datetime, end: datetime) -> list[ScheduleOverride]:
        rows = (
            self.db.query(models.ScheduleOverride)
            .filter(
                models.ScheduleOverride.salon_id == salon_id,
                models.ScheduleOverride.start_time < to_db(end),
                models.ScheduleOverride.end_time > to_db(start),
            )
            .all()
        )
        return [override_from_row(r) for r in rows]

    async def find_overrides_by_professional(
        self, professional_id: str, start: datetime, end: datetime
    ) -> list[ScheduleOverride]:
        rows = (
            self.db.query(models.ScheduleOverride)
            .filter(
                models.ScheduleOverride.professional_id == professional_id,
                models.ScheduleOverride.start_time < to_db(end),
                models.ScheduleOverride.end_time > to_db(start),
            )
            .all()
        )
        return [override_from_row(r) for r in rows]

    async def generate_slots(
        self, professional_id: str, day: date, granularity: int, tz: ZoneInfo
    ) -> list[TimeSlot]:
        rules = await self.find_by_professional_and_day(professional_id, day_of_week(day))
        if not rules:
            return []
        return generate_slots_from_rules(day, rules, granularity, tz, professional_id)

    async def save_rule(self, rule: AvailabilityRule) -> AvailabilityRule:
        row = self.db.get(models.AvailabilityRule, rule.id)
        if row is None:
            row = models.AvailabilityRule(id=rule.id)
            self.db.add(row)
        row.professional_id = rule.professional_id
        row.day_of_week = rule.day_of_week
        row.start_time = rule.start_time
        row.end_time = rule.end_time
        row.is_break = rule.is_break
        self.db.commit()
        return rule_from_row(row)

    async def delete_rule(self, rule_id: str) -> None:
        self.db.query(models.AvailabilityRule).filter(models.AvailabilityRule.id == rule_id).delete()
        self.db.commit()

    async def save_override(self, override: ScheduleOverride) -> ScheduleOverride:
        row = self.db.get(models.ScheduleOverride, override.id)
        if row is None:
            row = models.ScheduleOverride(id=override.id)
            self.db.add(row)
        row.salon_id = override.salon_id
        row.professional_id = override.professional_id
        row.start_time = to_db(override.start)
        row.end_time = to_db(override.end)
        row.reason = override.reason
        self.db.commit()
        return override_from_row(row)

    async def delete_override(self, override_id: str) -> None:
        self.db.query(models.ScheduleOverride).filter(models.ScheduleOverride.id == override_id).delete()
        self.db.commit()


class ProfessionalRepository(IProfessionalRepository):
    def __init__(self, db: Session):
        self.db = db

    async def find_by_id(self, professional_id: str) -> Optional[Professional]:
        row = self.db.query(models.Professional).filter(models.Professional.id == professional_id).first()
        return professional_from_row(row) if row else None

    async def find_by_salon(self, salon_id: str, include_inactive: bool = False) -> list[Professional]:
        query = self.db.query(models.Professional).filter(models.Professional.salon_id == salon_id)
        if not include_inactive:
            query = query.filter(models.Professional.is_active.is_(True))
        return [professional_from_row(r) for r in query.order_by(models.Professional.name).all()]

    async def find_by_name(self, name: str, salon_id: str) -> Optional[Professional]:
        row = (
            self.db.query(models.Professional)
            .filter(
                models.Professional.salon_id == salon_id,
                models.Professional.name.ilike(f"%{name.strip()}%"),
            )
            .order_by(models.Professional.is_active.desc(), models.Professional.name)
            .first()
        )
        return professional_from_row(row) if row else None

    async def save(self, professional: Professional) -> Professional:
        row = self.db.get(models.Professional, professional.id)
        if row is None:
            row = models.Professional(id=professional.id)
            self.db.add(row)
        row.salon_id = professional.salon_id
        row.user_id = professional.user_id
        row.name = professional.name
        row.email = professional.email
        row.phone = professional.phone
        row.role = professional.role
        row.is_active = professional.is_active
        row.google_calendar_id = professional.google_calendar_id
        if professional.service_ids:
            row.services = (
                self.db.query(models.Service).filter(models.Service.id.in_(list(professional.service_ids))).all()
            )
        else:
            row.services = []
        self.db.commit()
        self.db.refresh(row)
        return professional_from_row(row)


class ServiceRepository(IServiceRepository):
    def __init__(self, db: Session):
        self.db = db

    async def find_by_id(self, service_id: str) -> Optional[Service]:
        row = self.db.query(models.Service).filter(models.Service.id == service_id).first()
        return service_from_row(row) if row else None

    async def find_by_salon(self, salon_id: str, include_inactive: bool = False) -> list[Service]:
        query = self.db.query(models.Service).filter(models.Service.salon_id == salon_id)
        if not include_inactive:
            query = query.filter(models.Service.is_active.is_(True))
        return [service_from_row(r) for r in query.order_by(models.Service.name).all()]

    async def save(self, service: Service) -> Service:
        row = self.db.get(models.Service, service.id)
        if row is None:
            row = models.Service(id=service.id)
            self.db.add(row)
        row.salon_id = service.salon_id
        row.name = service.name
        row.description = service.description
        row.duration_minutes = service.duration_minutes
        row.price = service.price.amount
        row.price_type = service.price_type
        row.price_min = service.price_min.amount if service.price_min else None
        row.price_max = service.price_max.amount if service.price_max else None
        row.is_active = service.is_active
        self.db.commit()
        self.db.refresh(row)
        return service_from_row(row)
