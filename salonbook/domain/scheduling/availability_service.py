"""
Availability Service - merges every availability source for a professional.

The internal store is authoritative. Calendar free/busy and the external
scheduler are advisory: when they fail or time out the result degrades to
internal-only availability instead of failing the request.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Awaitable, Optional, Sequence, TypeVar

from ...config import EXTERNAL_PROVIDER_TIMEOUT_SECONDS, SLOT_GRANULARITY_MINUTES
from ...shared.time_utils import day_of_week, local_date_of, local_day_bounds, utc_now
from .entities import Salon, TimeSlot
from .ports import (
    IAppointmentRepository,
    IAvailabilityRepository,
    ICalendarService,
    IExternalScheduler,
    IProfessionalRepository,
    ISalonRepository,
)
from .time_calculator import fits_duration, generate_slots_from_hours
from .value_objects import DateRange

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _block(slots: Sequence[TimeSlot], busy: Sequence[DateRange]) -> list[TimeSlot]:
    """Mark every slot overlapping a busy range as unavailable"""
    if not busy:
        return list(slots)
    return [slot.mark_unavailable() if any(slot.overlaps(b) for b in busy) else slot for slot in slots]


class AvailabilityService:
    def __init__(
        self,
        appointment_repo: IAppointmentRepository,
        availability_repo: IAvailabilityRepository,
        salon_repo: ISalonRepository,
        professional_repo: IProfessionalRepository,
        calendar_service: Optional[ICalendarService] = None,
        external_scheduler: Optional[IExternalScheduler] = None,
        provider_timeout: float = EXTERNAL_PROVIDER_TIMEOUT_SECONDS,
    ):
        self.appointment_repo = appointment_repo
        self.availability_repo = availability_repo
        self.salon_repo = salon_repo
        self.professional_repo = professional_repo
        self.calendar_service = calendar_service
        self.external_scheduler = external_scheduler
        self.provider_timeout = provider_timeout

    async def _call_provider(self, provider: str, salon_id: str, call: Awaitable[T]) -> Optional[T]:
        """Await a provider call bounded by the timeout; failures are logged and become None"""
        try:
            return await asyncio.wait_for(call, timeout=self.provider_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ {provider} timed out after {self.provider_timeout}s for salon {salon_id}")
        except Exception as e:
            logger.warning(f"⚠️ {provider} failed for salon {salon_id}: {e}")
        return None

    async def _provider_ready(self, provider, name: str, salon_id: str) -> bool:
        if provider is None:
            return False
        return bool(await self._call_provider(name, salon_id, provider.is_configured(salon_id)))

    async def _calendar_busy(
        self, salon_id: str, calendar_id: Optional[str], start: datetime, end: datetime
    ) -> list[DateRange]:
        if not calendar_id:
            return []
        if not await self._provider_ready(self.calendar_service, "Google Calendar", salon_id):
            return []
        busy = await self._call_provider(
            "Google Calendar",
            salon_id,
            self.calendar_service.get_free_busy(salon_id, calendar_id, start, end),
        )
        return list(busy or [])

    async def _scheduler_busy(
        self, salon_id: str, professional_id: str, start: datetime, end: datetime
    ) -> list[DateRange]:
        if not await self._provider_ready(self.external_scheduler, "Trinks", salon_id):
            return []
        busy = await self._call_provider(
            "Trinks",
            salon_id,
            self.external_scheduler.get_busy_slots(salon_id, professional_id, start, end),
        )
        return [slot.range for slot in busy or []]

    async def _base_slots(
        self, salon: Salon, professional_id: str, day: date, granularity: int
    ) -> list[TimeSlot]:
        slots = await self.availability_repo.generate_slots(professional_id, day, granularity, salon.zone)
        if slots:
            return slots

        hours = salon.working_hours_for(day_of_week(day))
        if not hours:
            logger.info(f"📅 Salon {salon.id} is closed on {day.isoformat()}")
            return []
        return generate_slots_from_hours(day, hours.start, hours.end, granularity, salon.zone, professional_id)

    @staticmethod
    def _finalize(
        slots: Sequence[TimeSlot], day: date, duration: int, now: datetime, salon: Salon
    ) -> list[TimeSlot]:
        """Apply the duration fit and, for today, drop slots that already started"""
        is_today = local_date_of(now, salon.zone) == day
        result = []
        for index, slot in enumerate(slots):
            bookable = fits_duration(index, slots, duration)
            if is_today and slot.start <= now:
                bookable = False
            result.append(slot if bookable else slot.mark_unavailable())
        return result

    async def build_timeline(
        self,
        salon_id: str,
        professional_id: str,
        day: date,
        duration: int,
        granularity: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[TimeSlot]:
        """
        Every candidate slot of the local ``day`` with its final availability flag.

        Stages only ever narrow availability: rules (or salon hours), schedule
        overrides, stored appointments, calendar free/busy, external scheduler,
        then the duration fit and the "already started" filter.
        """
        granularity = granularity or SLOT_GRANULARITY_MINUTES
        now = now or utc_now()

        salon = await self.salon_repo.find_by_id(salon_id)
        if not salon:
            logger.warning(f"⚠️ Salon {salon_id} not found while computing availability")
            return []

        slots = await self._base_slots(salon, professional_id, day, granularity)
        if not slots:
            return []

        day_start, day_end = local_day_bounds(day, salon.zone)

        overrides = await self.availability_repo.find_overrides(salon_id, day_start, day_end)
        slots = _block(slots, [o.range for o in overrides if o.applies_to(professional_id)])

        appointments = await self.appointment_repo.find_by_professional_and_date(professional_id, day, salon.zone)
        slots = _block(slots, [a.range for a in appointments if not a.is_cancelled])

        professional = await self.professional_repo.find_by_id(professional_id)
        calendar_id = professional.google_calendar_id if professional else None
        slots = _block(slots, await self._calendar_busy(salon_id, calendar_id, day_start, day_end))

        slots = _block(slots, await self._scheduler_busy(salon_id, professional_id, day_start, day_end))

        return self._finalize(slots, day, duration, now, salon)

    async def calculate_availability(
        self,
        salon_id: str,
        professional_id: str,
        day: date,
        duration: int,
        granularity: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[TimeSlot]:
        """Bookable start slots for a service of ``duration`` minutes"""
        timeline = await self.build_timeline(salon_id, professional_id, day, duration, granularity, now)
        return [slot for slot in timeline if slot.available]

    async def build_salon_timeline(
        self,
        salon_id: str,
        day: date,
        duration: int,
        granularity: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[TimeSlot]:
        """Salon-hours availability when no professional was requested"""
        granularity = granularity or SLOT_GRANULARITY_MINUTES
        now = now or utc_now()

        salon = await self.salon_repo.find_by_id(salon_id)
        if not salon:
            return []

        hours = salon.working_hours_for(day_of_week(day))
        if not hours:
            return []

        slots = generate_slots_from_hours(day, hours.start, hours.end, granularity, salon.zone)
        day_start, day_end = local_day_bounds(day, salon.zone)
        overrides = await self.availability_repo.find_overrides(salon_id, day_start, day_end)
        slots = _block(slots, [o.range for o in overrides if o.professional_id is None])
        return self._finalize(slots, day, duration, now, salon)

    async def is_slot_available(
        self, salon_id: str, professional_id: str, start: datetime, end: datetime
    ) -> bool:
        """Check one window, stopping at the first source that reports a conflict"""
        if await self.appointment_repo.find_conflicting(professional_id, start, end):
            return False

        window = DateRange(start, end)
        overrides = await self.availability_repo.find_overrides(salon_id, start, end)
        if any(o.applies_to(professional_id) and o.range.overlaps(window) for o in overrides):
            return False

        professional = await self.professional_repo.find_by_id(professional_id)
        calendar_id = professional.google_calendar_id if professional else None
        if any(b.overlaps(window) for b in await self._calendar_busy(salon_id, calendar_id, start, end)):
            return False

        if any(b.overlaps(window) for b in await self._scheduler_busy(salon_id, professional_id, start, end)):
            return False

        return True


