"""
Google Calendar Service
Handles free/busy lookups and event creation, updates, and deletion
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import EXTERNAL_PROVIDER_TIMEOUT_SECONDS, GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET
from ..domain.salons.repository import SalonIntegrationRepository
from ..domain.scheduling.ports import CalendarEvent, ICalendarService, ProviderEventNotFound
from ..domain.scheduling.value_objects import DateRange
from ..shared.crypto import decrypt_token, encrypt_token
from ..shared.time_utils import from_db, iso_utc, parse_instant, utc_now

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
PROVIDER = "google"


class GoogleCalendarError(Exception):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


def _event_body(event: CalendarEvent) -> dict[str, Any]:
    body = {
        "summary": event.summary,
        "start": {"dateTime": iso_utc(event.start), "timeZone": "UTC"},
        "end": {"dateTime": iso_utc(event.end), "timeZone": "UTC"},
    }
    if event.description:
        body["description"] = event.description
    return body


class GoogleCalendarService(ICalendarService):
    """Google Calendar REST client using each salon's stored OAuth tokens"""

    def __init__(
        self,
        db: Session,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = EXTERNAL_PROVIDER_TIMEOUT_SECONDS,
    ):
        self.integrations = SalonIntegrationRepository(db)
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.timeout)

    async def is_configured(self, salon_id: str) -> bool:
        integration = self.integrations.get_active(salon_id, PROVIDER)
        return bool(integration and (integration.access_token or integration.refresh_token))

    async def get_valid_access_token(self, salon_id: str) -> str:
        """
        Get a valid access token, refreshing if it expires within 5 minutes.
        Raises GoogleCalendarError when the salon has no usable credentials.
        """
        integration = self.integrations.get_active(salon_id, PROVIDER)
        if not integration:
            raise GoogleCalendarError("Google Calendar not connected")

        expires_at = from_db(integration.token_expires_at)
        if integration.access_token and expires_at and expires_at > utc_now() + timedelta(minutes=5):
            return decrypt_token(integration.access_token)

        logger.info(f"🔄 Google Calendar token expired for salon {salon_id}, refreshing...")
        refresh_token = decrypt_token(integration.refresh_token)
        if not refresh_token:
            raise GoogleCalendarError("Google Calendar refresh token missing")

        async with self._client() as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )

        if response.status_code != 200:
            logger.error(f"❌ Token refresh failed: {response.text}")
            raise GoogleCalendarError("Google Calendar token refresh failed", response.status_code)

        tokens = response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            raise GoogleCalendarError("No access token in refresh response")

        expires_in = int(tokens.get("expires_in", 3600))
        self.integrations.update_tokens(
            integration, encrypt_token(access_token), utc_now() + timedelta(seconds=expires_in)
        )
        logger.info("✅ Google Calendar token refreshed successfully")
        return access_token

    async def _request(self, salon_id: str, method: str, path: str, **kwargs) -> httpx.Response:
        access_token = await self.get_valid_access_token(salon_id)
        async with self._client() as client:
            return await client.request(
                method,
                f"{GOOGLE_CALENDAR_API}{path}",
                headers={"Authorization": f"Bearer {access_token}"},
                **kwargs,
            )

    async def get_free_busy(
        self, salon_id: str, calendar_id: str, start: datetime, end: datetime
    ) -> list[DateRange]:
        response = await self._request(
            salon_id,
            "POST",
            "/freeBusy",
            json={
                "timeMin": iso_utc(start),
                "timeMax": iso_utc(end),
                "timeZone": "UTC",
                "items": [{"id": calendar_id}],
            },
        )
        if response.status_code != 200:
            raise GoogleCalendarError(f"FreeBusy query failed: {response.text}", response.status_code)

        calendar = response.json().get("calendars", {}).get(calendar_id, {})
        if calendar.get("errors"):
            reason = calendar["errors"][0].get("reason", "unknown")
            raise GoogleCalendarError(f"FreeBusy error for calendar {calendar_id}: {reason}")

        busy = [
            DateRange(parse_instant(period["start"], None), parse_instant(period["end"], None))
            for period in calendar.get("busy", [])
        ]
        logger.info(f"📅 {len(busy)} busy period(s) in Google Calendar {calendar_id}")
        return busy

    async def create_event(self, salon_id: str, calendar_id: str, event: CalendarEvent) -> str:
        response = await self._request(salon_id, "POST", f"/calendars/{calendar_id}/events", json=_event_body(event))
        if response.status_code not in (200, 201):
            logger.error(f"❌ Failed to create calendar event: {response.text}")
            raise GoogleCalendarError("Failed to create calendar event", response.status_code)

        event_id = response.json().get("id")
        if not event_id:
            raise GoogleCalendarError("Google Calendar returned an event without id")
        logger.info(f"✅ Google Calendar event created: {event_id}")
        return event_id

    async def update_event(self, salon_id: str, calendar_id: str, event_id: str, event: CalendarEvent) -> None:
        response = await self._request(
            salon_id, "PUT", f"/calendars/{calendar_id}/events/{event_id}", json=_event_body(event)
        )
        if response.status_code in (404, 410):
            raise ProviderEventNotFound(f"Google Calendar event {event_id} not found")
        if response.status_code != 200:
            logger.error(f"❌ Failed to update calendar event: {response.text}")
            raise GoogleCalendarError("Failed to update calendar event", response.status_code)
        logger.info(f"✅ Google Calendar event updated: {event_id}")

    async def delete_event(self, salon_id: str, calendar_id: str, event_id: str) -> None:
        response = await self._request(salon_id, "DELETE", f"/calendars/{calendar_id}/events/{event_id}")
        if response.status_code in (404, 410):
            raise ProviderEventNotFound(f"Google Calendar event {event_id} not found")
        if response.status_code not in (200, 204):
            logger.error(f"❌ Failed to delete calendar event: {response.text}")
            raise GoogleCalendarError("Failed to delete calendar event", response.status_code)
        logger.info(f"✅ Google Calendar event deleted: {event_id}")
