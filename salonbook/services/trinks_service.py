import logging
from datetime import datetime
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import EXTERNAL_PROVIDER_TIMEOUT_SECONDS, TRINKS_API_KEY, TRINKS_API_URL
from ..domain.salons.repository import SalonIntegrationRepository
from ..domain.scheduling.entities import TimeSlot
from ..domain.scheduling.ports import AppointmentSyncData, IExternalScheduler, ProviderEventNotFound
from ..models_integrations import SalonIntegration
from ..shared.crypto import decrypt_token
from ..shared.time_utils import format_date, format_time, get_zone, parse_instant

logger = logging.getLogger(__name__)

PROVIDER = "trinks"
CANCELLED_STATUSES = ("cancelado", "cancelled")


class TrinksError(Exception):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class TrinksService(IExternalScheduler):
    """Service for interacting with the Trinks salon management API"""

    def __init__(
        self,
        db: Session,
        base_url: str = TRINKS_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = EXTERNAL_PROVIDER_TIMEOUT_SECONDS,
    ):
        self.integrations = SalonIntegrationRepository(db)
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout

    def _token(self, integration: SalonIntegration) -> Optional[str]:
        return decrypt_token(integration.access_token) or TRINKS_API_KEY

    def _headers(self, salon_id: str) -> dict[str, str]:
        integration = self.integrations.get_active(salon_id, PROVIDER)
        if not integration:
            raise TrinksError("Trinks integration not active for this salon")
        token = self._token(integration)
        if not token:
            raise TrinksError("Trinks integration not configured or token invalid")

        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        establishment_id = (integration.settings or {}).get("establishment_id")
        if establishment_id:
            headers["estabelecimentoId"] = str(establishment_id)
        return headers

    async def _request(self, salon_id: str, method: str, endpoint: str, **kwargs) -> httpx.Response:
        headers = self._headers(salon_id)
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.request(method, f"{self.base_url}{endpoint}", headers=headers, **kwargs)

        if response.status_code in (404, 410) and method in ("PUT", "DELETE"):
            raise ProviderEventNotFound(f"Trinks booking not found: {endpoint}")
        if response.status_code >= 400:
            logger.error(f"❌ Trinks API error ({response.status_code}) on {endpoint}: {response.text}")
            raise TrinksError(f"Trinks API error ({response.status_code}): {response.text}", response.status_code)
        return response

    async def is_configured(self, salon_id: str) -> bool:
        integration = self.integrations.get_active(salon_id, PROVIDER)
        return bool(integration and self._token(integration))

    async def get_busy_slots(
        self, salon_id: str, professional_id: str, start: datetime, end: datetime
    ) -> list[TimeSlot]:
        """Non-cancelled Trinks bookings of a professional inside [start, end)"""
        response = await self._request(
            salon_id,
            "GET",
            "/agendamentos",
            params={
                "dataInicio": start.date().isoformat(),
                "dataFim": end.date().isoformat(),
                "profissionalId": professional_id,
            },
        )
        payload = response.json() or []
        if isinstance(payload, dict):
            payload = payload.get("data", [])

        busy = []
        for booking in payload:
            if not booking.get("dataInicio") or not booking.get("dataFim"):
                continue
            if (booking.get("status") or "").lower() in CANCELLED_STATUSES:
                continue
            slot = TimeSlot(
                start=parse_instant(booking["dataInicio"], get_zone()),
                end=parse_instant(booking["dataFim"], get_zone()),
                available=False,
                professional_id=professional_id,
            )
            if slot.start < end and slot.end > start:
                busy.append(slot)
        return busy

    def _payload(self, booking: AppointmentSyncData) -> dict[str, Any]:
        zone = get_zone()
        return {
            "data": booking.starts_at.astimezone(zone).date().isoformat(),
            "hora": format_time(booking.starts_at, zone),
            "duracao": int((booking.ends_at - booking.starts_at).total_seconds() // 60),
            "profissional_id": booking.professional_id,
            "servico_id": booking.service_id,
            "cliente_nome": booking.customer_name or "Cliente",
            "cliente_telefone": booking.customer_phone or "",
            "observacoes": booking.notes or "",
        }

    @staticmethod
    def _extract_id(response: httpx.Response) -> Optional[str]:
        if not response.content:
            return None
        body = response.json()
        if isinstance(body, (str, int)):
            return str(body)
        if isinstance(body, dict) and body.get("id") is not None:
            return str(body["id"])
        return None

    async def create_appointment(self, booking: AppointmentSyncData) -> str:
        response = await self._request(booking.salon_id, "POST", "/agendamentos", json=self._payload(booking))
        external_id = self._extract_id(response)
        if not external_id:
            raise TrinksError("Trinks returned a booking without id")
        logger.info(
            f"✅ Trinks booking {external_id} created for {format_date(booking.starts_at)} "
            f"{format_time(booking.starts_at)}"
        )
        return external_id

    async def update_appointment(self, external_id: str, booking: AppointmentSyncData) -> None:
        await self._request(booking.salon_id, "PUT", f"/agendamentos/{external_id}", json=self._payload(booking))
        logger.info(f"✅ Trinks booking {external_id} updated")

    async def delete_appointment(self, salon_id: str, external_id: str) -> None:
        await self._request(salon_id, "DELETE", f"/agendamentos/{external_id}")
        logger.info(f"✅ Trinks booking {external_id} deleted")
