"""
Time calculations for availability.

Turns a day's working-hour rules into fixed-size slots and answers whether a
service of a given length fits at a candidate start.
"""

import logging
from datetime import date, time
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from ...config import SLOT_GRANULARITY_MINUTES
from ...shared.time_utils import combine_local, get_zone, time_to_minutes
from .entities import AvailabilityRule, TimeSlot

logger = logging.getLogger(__name__)


def _overlaps_break(start_minute: int, end_minute: int, breaks: Iterable[AvailabilityRule]) -> bool:
    return any(start_minute < b.end_minutes and end_minute > b.start_minutes for b in breaks)


def _minute_to_instant(day: date, minute: int, tz: ZoneInfo):
    return combine_local(day, time(minute // 60, minute % 60), tz)


def _walk(
    day: date,
    start_minute: int,
    end_minute: int,
    granularity: int,
    tz: ZoneInfo,
    breaks: Sequence[AvailabilityRule],
    professional_id: Optional[str],
) -> list[tuple[int, TimeSlot]]:
    slots = []
    minute = start_minute
    while minute + granularity <= end_minute:
        slot_end = minute + granularity
        if not _overlaps_break(minute, slot_end, breaks):
            slots.append(
                (
                    minute,
                    TimeSlot(
                        start=_minute_to_instant(day, minute, tz),
                        end=_minute_to_instant(day, slot_end, tz),
                        available=True,
                        professional_id=professional_id,
                    ),
                )
            )
        minute += granularity
    return slots


def generate_slots_from_rules(
    day: date,
    rules: Sequence[AvailabilityRule],
    granularity: int = SLOT_GRANULARITY_MINUTES,
    tz: Optional[ZoneInfo] = None,
    professional_id: Optional[str] = None,
) -> list[TimeSlot]:
    """
    Build the slots of one local day from a professional's rules for that day.

    Work rules are walked in ``granularity`` steps; slots touching a break are
    skipped. Overlapping work rules never produce overlapping slots: once a
    slot is emitted, candidates starting before its end are dropped.
    """
    if granularity <= 0:
        raise ValueError("Slot granularity must be positive")
    tz = tz or get_zone()

    work = sorted((r for r in rules if not r.is_break), key=lambda r: r.start_minutes)
    breaks = [r for r in rules if r.is_break]

    candidates: list[tuple[int, TimeSlot]] = []
    for rule in work:
        candidates.extend(_walk(day, rule.start_minutes, rule.end_minutes, granularity, tz, breaks, professional_id))

    candidates.sort(key=lambda item: item[0])
    slots: list[TimeSlot] = []
    last_end = -1
    for minute, slot in candidates:
        if minute < last_end:
            continue
        slots.append(slot)
        last_end = minute + granularity
    return slots


def generate_slots_from_hours(
    day: date,
    start: str,
    end: str,
    granularity: int = SLOT_GRANULARITY_MINUTES,
    tz: Optional[ZoneInfo] = None,
    professional_id: Optional[str] = None,
) -> list[TimeSlot]:
    """Salon working-hours fallback when a professional has no rules for the day"""
    if granularity <= 0:
        raise ValueError("Slot granularity must be positive")
    tz = tz or get_zone()
    walked = _walk(day, time_to_minutes(start), time_to_minutes(end), granularity, tz, [], professional_id)
    return [slot for _, slot in walked]


def fits_duration(index: int, slots: Sequence[TimeSlot], minutes: int) -> bool:
    """
    Whether a service of ``minutes`` can start at ``slots[index]``.

    The run of available, back-to-back slots starting there must cover the
    whole duration. When the slot length equals the duration this is the same
    as ``TimeSlot.can_fit``.
    """
    first = slots[index]
    if not first.available:
        return False
    if first.can_fit(minutes):
        return True

    covered = first.duration_minutes
    previous_end = first.end
    for slot in slots[index + 1 :]:
        if not slot.available or slot.start != previous_end:
            return False
        covered += slot.duration_minutes
        if covered >= minutes:
            return True
        previous_end = slot.end
    return False
