"""HTTP tests for the scheduling router."""
import pytest
from fastapi.testclient import TestClient

from salonbook.container import Container
from salonbook.domain.scheduling.router import get_container
from salonbook.main import app

from tests.conftest import CUSTOMER_ID, PROFESSIONAL_ID, SALON_ID, SERVICE_ID, fixed_clock


@pytest.fixture
def client(seeded, calendar, scheduler):
    def container_override():
        return Container(
            seeded,
            calendar_service=calendar,
            external_scheduler=scheduler,
            sync_mode="inline",
            clock=fixed_clock,
        )

    app.dependency_overrides[get_container] = container_override
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def booking(starts_at="2025-01-28T10:00:00"):
    return {
        "salonId": SALON_ID,
        "customerId": CUSTOMER_ID,
        "professionalId": PROFESSIONAL_ID,
        "serviceId": SERVICE_ID,
        "startsAt": starts_at,
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_and_conflict(client):
    created = client.post("/scheduling/appointments", json=booking())
    assert created.status_code == 201
    assert created.json()["startsAtISO"] == "2025-01-28T13:00:00Z"

    conflict = client.post("/scheduling/appointments", json=booking("2025-01-28T10:15:00"))
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["code"] == "APPOINTMENT_CONFLICT"


def test_update_and_cancel(client):
    appointment_id = client.post("/scheduling/appointments", json=booking()).json()["id"]

    updated = client.patch(
        "/scheduling/appointments", json={"appointmentId": appointment_id, "startsAt": "2025-01-28T11:00:00"}
    )
    assert updated.status_code == 200
    assert updated.json()["startsAt"] == "28/01/2025 às 11:00"

    cancelled = client.post("/scheduling/appointments/cancel", json={"appointmentId": appointment_id})
    assert cancelled.json()["status"] == "cancelled"


def test_error_status_codes(client):
    assert client.post("/scheduling/appointments", json={**booking(), "salonId": "nope"}).status_code == 404
    assert client.post("/scheduling/appointments", json=booking("2025-01-20T10:00:00")).status_code == 422
    assert client.post("/scheduling/appointments", json=booking("not-a-date")).status_code == 400


def test_available_slots(client):
    response = client.post(
        "/scheduling/availability/slots",
        json={"salonId": SALON_ID, "date": "2025-01-28", "professionalId": PROFESSIONAL_ID, "granularity": 60},
    )
    assert response.status_code == 200
    assert response.json()["totalAvailable"] == 9


def test_salon_lead_and_customer_endpoints(client):
    assert client.get(f"/scheduling/salons/{SALON_ID}").json()["name"] == "Studio Bella"

    lead = client.post(
        "/scheduling/leads/qualify", json={"salonId": SALON_ID, "phoneNumber": "21998765432", "interest": "medium"}
    )
    assert lead.json()["status"] == "new"

    customer = client.post(
        "/scheduling/customers/identify", json={"salonId": SALON_ID, "phone": "21998765432", "name": "João"}
    )
    assert customer.json()["created"] is True


def test_professionals_rules_and_preferences(client):
    team = client.get(f"/scheduling/salons/{SALON_ID}/professionals").json()
    assert team["total"] == 2

    rules = client.post(
        "/scheduling/professionals/availability-rules", json={"salonId": SALON_ID, "professionalName": "Ana"}
    )
    assert rules.status_code == 200
    assert rules.json()["message"] == "Ana não tem horários de trabalho cadastrados"

    missing = client.post(
        "/scheduling/professionals/availability-rules", json={"salonId": SALON_ID, "professionalName": "Carlos"}
    )
    assert missing.status_code == 404

    preference = client.post(
        "/scheduling/customers/preferences",
        json={"salonId": SALON_ID, "customerId": CUSTOMER_ID, "key": "corte", "value": "curto"},
    )
    assert preference.json()["customerId"] == CUSTOMER_ID


def test_empty_update_is_a_validation_error(client):
    appointment_id = client.post("/scheduling/appointments", json=booking()).json()["id"]
    response = client.patch("/scheduling/appointments", json={"appointmentId": appointment_id})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "REQUIRED_FIELD"
