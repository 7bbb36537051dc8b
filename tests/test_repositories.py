"""Tests for the SQLAlchemy repositories written through their own save and delete operations."""
from datetime import date, datetime, timedelta

from salonbook import models
from salonbook.domain.scheduling.entities import AvailabilityRule, ScheduleOverride, WorkingHours
from salonbook.shared.time_utils import combine_local, parse_hhmm

from tests.conftest import CUSTOMER_ID, NOW, PROFESSIONAL_ID, SALON_ID, SAO_PAULO, SERVICE_ID

TUESDAY = date(2025, 1, 28)


def local(hhmm, day=TUESDAY):
    return combine_local(day, parse_hhmm(hhmm), SAO_PAULO)


def free_times(slots):
    return [s.start_time(SAO_PAULO) for s in slots if s.available]


class TestAvailabilityRules:
    async def test_saved_rule_drives_slot_generation(self, repos):
        availability = repos["availability"]
        await availability.save_rule(
            AvailabilityRule(
                id="rule-1", professional_id=PROFESSIONAL_ID, day_of_week=2, start_time="13:00", end_time="16:00"
            )
        )

        slots = await availability.generate_slots(PROFESSIONAL_ID, TUESDAY, 60, SAO_PAULO)
        assert [s.start_time(SAO_PAULO) for s in slots] == ["13:00", "14:00", "15:00"]

        await availability.delete_rule("rule-1")
        assert await availability.generate_slots(PROFESSIONAL_ID, TUESDAY, 60, SAO_PAULO) == []

    async def test_save_rule_updates_in_place(self, repos):
        availability = repos["availability"]
        rule = AvailabilityRule(
            id="rule-1", professional_id=PROFESSIONAL_ID, day_of_week=2, start_time="09:00", end_time="12:00"
        )
        await availability.save_rule(rule)
        await availability.save_rule(
            AvailabilityRule(
                id="rule-1", professional_id=PROFESSIONAL_ID, day_of_week=3, start_time="10:00", end_time="12:00"
            )
        )

        rules = await availability.find_by_professional(PROFESSIONAL_ID)
        assert [(r.day_of_week, r.start_time) for r in rules] == [(3, "10:00")]


class TestScheduleOverrides:
    async def test_professional_override_blocks_then_unblocks(self, repos, availability_service):
        availability = repos["availability"]
        await availability.save_override(
            ScheduleOverride(
                id="ovr-1",
                salon_id=SALON_ID,
                professional_id=PROFESSIONAL_ID,
                start=local("09:00"),
                end=local("12:00"),
                reason="Consulta médica",
            )
        )

        blocked = await availability_service.build_timeline(SALON_ID, PROFESSIONAL_ID, TUESDAY, 60, 60, NOW)
        assert free_times(blocked)[0] == "12:00"

        day_start, day_end = local("00:00"), local("00:00") + timedelta(days=1)
        found = await availability.find_overrides_by_professional(PROFESSIONAL_ID, day_start, day_end)
        assert [o.reason for o in found] == ["Consulta médica"]
        assert found[0].start == local("09:00")

        await availability.delete_override("ovr-1")
        unblocked = await availability_service.build_timeline(SALON_ID, PROFESSIONAL_ID, TUESDAY, 60, 60, NOW)
        assert free_times(unblocked)[0] == "09:00"
        assert await availability.find_overrides_by_professional(PROFESSIONAL_ID, day_start, day_end) == []


class TestAppointmentQueries:
    async def test_find_by_customer_includes_cancelled_newest_first(self, seeded, repos):
        for appointment_id, day, status in [("a1", 28, "confirmed"), ("a2", 29, "cancelled")]:
            seeded.add(
                models.Appointment(
                    id=appointment_id,
                    salon_id=SALON_ID,
                    customer_id=CUSTOMER_ID,
                    professional_id=PROFESSIONAL_ID,
                    service_id=SERVICE_ID,
                    starts_at=datetime(2025, 1, day, 13, 0),
                    ends_at=datetime(2025, 1, day, 13, 30),
                    status=status,
                )
            )
        seeded.commit()

        appointments = await repos["appointments"].find_by_customer(CUSTOMER_ID)
        assert [a.id for a in appointments] == ["a2", "a1"]
        assert await repos["appointments"].find_by_customer("someone-else") == []


class TestSalonRepository:
    async def test_working_hours_are_written_with_day_names(self, seeded, repos):
        salon = await repos["salons"].find_by_id(SALON_ID)
        saved = await repos["salons"].save(salon.with_working_hours({2: WorkingHours("10:00", "19:00")}))

        assert seeded.get(models.Salon, SALON_ID).work_hours == {"tuesday": {"start": "10:00", "end": "19:00"}}
        assert saved.working_hours_for(2).end == "19:00"
        assert saved.working_hours_for(1) is None
