"""
Integration Sync Service - mirrors committed appointments to external providers.

The database is the source of truth. Providers are synced only after the
internal commit, each one independently, and their failures are collected
into a SyncResult instead of being raised.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ...config import EXTERNAL_PROVIDER_TIMEOUT_SECONDS, INTEGRATION_SYNC_MODE
from .ports import (
    AppointmentSyncData,
    IAppointmentRepository,
    ICalendarService,
    IExternalScheduler,
    ProviderEventNotFound,
)

logger = logging.getLogger(__name__)

GOOGLE = "google"
TRINKS = "trinks"

# Strong references to fire-and-forget sync jobs until they finish
_background_tasks: set = set()


@dataclass(frozen=True)
class IntegrationError:
    provider: str
    message: str
    code: Optional[str] = None

    def to_dict(self) -> dict:
        return {"provider": self.provider, "message": self.message, "code": self.code}


@dataclass(frozen=True)
class SyncResult:
    success: bool
    external_ids: dict = field(default_factory=dict)
    errors: list = field(default_factory=list)

    @property
    def google_event_id(self) -> Optional[str]:
        return self.external_ids.get(GOOGLE)

    @property
    def trinks_event_id(self) -> Optional[str]:
        return self.external_ids.get(TRINKS)


def _error_from(provider: str, exc: BaseException) -> IntegrationError:
    if isinstance(exc, asyncio.TimeoutError):
        return IntegrationError(provider, "Tempo limite excedido ao sincronizar", "TIMEOUT")
    code = getattr(exc, "code", None) or type(exc).__name__
    return IntegrationError(provider, str(exc) or type(exc).__name__, str(code))


class IntegrationSyncService:
    def __init__(
        self,
        calendar_service: Optional[ICalendarService] = None,
        external_scheduler: Optional[IExternalScheduler] = None,
        provider_timeout: float = EXTERNAL_PROVIDER_TIMEOUT_SECONDS,
    ):
        self.calendar_service = calendar_service
        self.external_scheduler = external_scheduler
        self.provider_timeout = provider_timeout

    async def _bounded(self, call):
        return await asyncio.wait_for(call, timeout=self.provider_timeout)

    async def _google_enabled(self, data: AppointmentSyncData) -> bool:
        if not self.calendar_service or not data.professional_google_calendar_id:
            return False
        return bool(await self._bounded(self.calendar_service.is_configured(data.salon_id)))

    async def _trinks_enabled(self, data: AppointmentSyncData) -> bool:
        if not self.external_scheduler:
            return False
        return bool(await self._bounded(self.external_scheduler.is_configured(data.salon_id)))

    async def _upsert_google(self, data: AppointmentSyncData) -> Optional[str]:
        """Update the stored event, or create one when none exists yet"""
        if not await self._google_enabled(data):
            return data.google_event_id

        calendar_id = data.professional_google_calendar_id
        event = data.to_calendar_event()
        if data.google_event_id:
            try:
                await self._bounded(
                    self.calendar_service.update_event(data.salon_id, calendar_id, data.google_event_id, event)
                )
                logger.info(f"📅 Google Calendar event {data.google_event_id} updated for {data.appointment_id}")
                return data.google_event_id
            except ProviderEventNotFound:
                logger.info(f"ℹ️ Google Calendar event {data.google_event_id} is gone, recreating")

        event_id = await self._bounded(self.calendar_service.create_event(data.salon_id, calendar_id, event))
        logger.info(f"📅 Google Calendar event {event_id} created for {data.appointment_id}")
        return event_id

    async def _upsert_trinks(self, data: AppointmentSyncData) -> Optional[str]:
        if not await self._trinks_enabled(data):
            return data.trinks_event_id

        if data.trinks_event_id:
            try:
                await self._bounded(self.external_scheduler.update_appointment(data.trinks_event_id, data))
                logger.info(f"🔄 Trinks booking {data.trinks_event_id} updated for {data.appointment_id}")
                return data.trinks_event_id
            except ProviderEventNotFound:
                logger.info(f"ℹ️ Trinks booking {data.trinks_event_id} is gone, recreating")

        external_id = await self._bounded(self.external_scheduler.create_appointment(data))
        logger.info(f"🔄 Trinks booking {external_id} created for {data.appointment_id}")
        return external_id

    async def _upsert_all(self, data: AppointmentSyncData, action: str) -> SyncResult:
        errors = []
        external_ids = {GOOGLE: data.google_event_id, TRINKS: data.trinks_event_id}

        for provider, upsert in ((GOOGLE, self._upsert_google), (TRINKS, self._upsert_trinks)):
            try:
                external_ids[provider] = await upsert(data)
            except Exception as e:
                errors.append(_error_from(provider, e))
                logger.warning(f"⚠️ Failed to {action} {data.appointment_id} on {provider}: {e}")

        return SyncResult(success=not errors, external_ids=external_ids, errors=errors)

    async def sync_create(self, data: AppointmentSyncData) -> SyncResult:
        """Mirror a new appointment; a stored external id switches that provider to update"""
        return await self._upsert_all(data, "create")

    async def sync_update(self, data: AppointmentSyncData) -> SyncResult:
        """Mirror a changed appointment, creating the remote copy on first sync"""
        return await self._upsert_all(data, "update")

    async def sync_delete(self, data: AppointmentSyncData) -> SyncResult:
        """Remove remote copies; an event already gone counts as deleted"""
        errors = []

        if data.google_event_id:
            try:
                if await self._google_enabled(data):
                    await self._bounded(
                        self.calendar_service.delete_event(
                            data.salon_id, data.professional_google_calendar_id, data.google_event_id
                        )
                    )
                    logger.info(f"🗑️ Google Calendar event {data.google_event_id} deleted")
            except ProviderEventNotFound:
                logger.info(f"ℹ️ Google Calendar event {data.google_event_id} was already deleted")
            except Exception as e:
                errors.append(_error_from(GOOGLE, e))
                logger.warning(f"⚠️ Failed to delete {data.appointment_id} on {GOOGLE}: {e}")

        if data.trinks_event_id:
            try:
                if await self._trinks_enabled(data):
                    await self._bounded(self.external_scheduler.delete_appointment(data.salon_id, data.trinks_event_id))
                    logger.info(f"🗑️ Trinks booking {data.trinks_event_id} deleted")
            except ProviderEventNotFound:
                logger.info(f"ℹ️ Trinks booking {data.trinks_event_id} was already deleted")
            except Exception as e:
                errors.append(_error_from(TRINKS, e))
                logger.warning(f"⚠️ Failed to delete {data.appointment_id} on {TRINKS}: {e}")

        return SyncResult(success=not errors, external_ids={GOOGLE: None, TRINKS: None}, errors=errors)


class SyncDispatcher:
    """
    Runs sync jobs after the internal commit.

    In ``background`` mode the job is handed to ``schedule`` (FastAPI's
    ``BackgroundTasks.add_task`` inside a request) or to a tracked asyncio
    task, and the caller gets ``None``. In ``inline`` mode the job is awaited
    and its SyncResult returned.
    """

    def __init__(
        self,
        sync_service: IntegrationSyncService,
        appointment_repo: IAppointmentRepository,
        mode: str = INTEGRATION_SYNC_MODE,
        schedule: Optional[Callable] = None,
    ):
        self.sync_service = sync_service
        self.appointment_repo = appointment_repo
        self.mode = mode
        self.schedule = schedule

    async def _persist_ids(self, data: AppointmentSyncData, result: SyncResult) -> None:
        google_id = result.google_event_id if result.google_event_id != data.google_event_id else None
        trinks_id = result.trinks_event_id if result.trinks_event_id != data.trinks_event_id else None
        if not google_id and not trinks_id:
            return
        try:
            await self.appointment_repo.update_external_ids(data.appointment_id, google_id, trinks_id)
        except Exception as e:
            logger.error(f"❌ Could not store external ids for {data.appointment_id}: {e}")

    async def run(self, operation: str, data: AppointmentSyncData) -> SyncResult:
        try:
            if operation == "create":
                result = await self.sync_service.sync_create(data)
            elif operation == "update":
                result = await self.sync_service.sync_update(data)
            elif operation == "delete":
                return await self.sync_service.sync_delete(data)
            else:
                raise ValueError(f"Unknown sync operation '{operation}'")
        except Exception as e:
            logger.error(f"❌ Unexpected sync failure for {data.appointment_id}: {e}")
            return SyncResult(success=False, errors=[IntegrationError("internal", str(e), "SYNC_FAILED")])

        await self._persist_ids(data, result)
        return result

    async def dispatch(self, operation: str, data: AppointmentSyncData) -> Optional[SyncResult]:
        if self.mode == "inline":
            return await self.run(operation, data)

        if self.schedule is not None:
            self.schedule(self.run, operation, data)
            return None

        task = asyncio.create_task(self.run(operation, data))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return None


async def drain_background_tasks() -> None:
    """Wait for pending fire-and-forget sync jobs (used on shutdown and in tests)"""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
