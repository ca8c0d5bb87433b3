from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.exceptions import PENDING_EXISTS_MESSAGE, TERMS_REQUIRED_MESSAGE
from app.services.form_sessions import form_sessions
from app.services.mock_store import get_mock_store, reset_mock_store


@pytest.fixture()
def client() -> TestClient:
    reset_mock_store()
    form_sessions.clear()
    yield TestClient(app)
    form_sessions.clear()
    reset_mock_store()


def _multipart(**overrides):
    data = {
        "terms_agreed": "true",
        "customer_name": "Kim",
        "gender": "female",
        "age": "29",
        "phone": "010-5555-6666",
        "desired_service": "natural",
        "desired_slots": json.dumps([{"date": "2025-04-02", "time": "13:00"}]),
        "referral_source": "네이버 검색",
    }
    data.update(overrides)
    files = {
        "front_photo": ("front.jpg", b"front-bytes", "image/jpeg"),
        "closed_photo": ("closed.jpg", b"closed-bytes", "image/jpeg"),
    }
    return data, files


def test_health_reports_mock_mode(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "mock_data": True}


def test_services_lists_catalog(client: TestClient) -> None:
    response = client.get("/reservations/services")

    assert response.status_code == 200
    ids = [item["id"] for item in response.json()]
    assert ids[:3] == ["natural", "combo", "shadow"]
    assert len(ids) == 7


def test_booked_slots_come_from_store(client: TestClient) -> None:
    response = client.get("/reservations/booked-slots")

    assert response.status_code == 200
    confirmed = [slot for slot in response.json() if slot["status"] == "confirmed"]
    assert confirmed[0]["selected_slot"] == {"date": "2025-03-04", "time": "11:00"}


def test_multipart_submit_creates_pending_reservation(client: TestClient) -> None:
    data, files = _multipart()

    response = client.post("/reservations", data=data, files=files)

    assert response.status_code == 201
    body = response.json()
    assert body["submitted"] is True
    assert body["reservation"]["status"] == "pending"
    assert body["reservation"]["front_photo_url"].startswith("reservation-photos/")
    assert len(get_mock_store().photos.paths()) == 2


def test_multipart_submit_without_terms_is_rejected(client: TestClient) -> None:
    data, files = _multipart(terms_agreed="false")

    response = client.post("/reservations", data=data, files=files)

    assert response.status_code == 400
    assert response.json()["detail"] == TERMS_REQUIRED_MESSAGE
    assert get_mock_store().photos.paths() == []


def test_multipart_submit_with_pending_phone_conflicts(client: TestClient) -> None:
    data, files = _multipart(phone="010-3333-4444")

    response = client.post("/reservations", data=data, files=files)

    assert response.status_code == 409
    assert response.json()["detail"] == PENDING_EXISTS_MESSAGE
    assert get_mock_store().photos.paths() == []


def test_multipart_submit_rejects_malformed_slots(client: TestClient) -> None:
    data, files = _multipart(desired_slots="not-json")

    response = client.post("/reservations", data=data, files=files)

    assert response.status_code == 400


def test_form_session_flow(client: TestClient) -> None:
    opened = client.post("/forms")
    assert opened.status_code == 201
    session_id = opened.json()["session_id"]

    patched = client.patch(
        f"/forms/{session_id}",
        json={"terms_agreed": True, "customer_name": "Lee", "gender": "male", "age": 41, "phone": "010-9999-0000"},
    )
    assert patched.status_code == 200
    assert patched.json()["customer_name"] == "Lee"

    client.put(f"/forms/{session_id}/service", json={"service": "combo"})
    slotted = client.post(f"/forms/{session_id}/slots", json={"date": "2025-04-10", "time": "15:00"})
    assert slotted.json()["desired_slots"] == [{"date": "2025-04-10", "time": "15:00"}]

    for kind in ("front", "closed"):
        uploaded = client.put(
            f"/forms/{session_id}/photos/{kind}",
            files={"photo": (f"{kind}.png", b"png-bytes", "image/png")},
        )
        assert uploaded.status_code == 200
    assert uploaded.json()["closed_photo"] == "closed.png"

    submitted = client.post(f"/forms/{session_id}/submit")
    assert submitted.status_code == 200
    assert submitted.json()["reservation"]["desired_service"] == "combo"

    state = client.get(f"/forms/{session_id}").json()
    assert state["submitted"] is True

    again = client.post(f"/forms/{session_id}/submit")
    assert again.status_code == 400


def test_form_rejects_confirmed_slot(client: TestClient) -> None:
    session_id = client.post("/forms").json()["session_id"]

    response = client.post(f"/forms/{session_id}/slots", json={"date": "2025-03-04", "time": "11:00"})

    assert response.status_code == 400


def test_service_change_clears_slots_over_http(client: TestClient) -> None:
    session_id = client.post("/forms").json()["session_id"]
    client.post(f"/forms/{session_id}/slots", json={"date": "2025-04-10", "time": "15:00"})
    client.post(f"/forms/{session_id}/slots", json={"date": "2025-04-11", "time": "15:00"})

    removed = client.delete(f"/forms/{session_id}/slots/0")
    assert [slot["date"] for slot in removed.json()["desired_slots"]] == ["2025-04-11"]

    changed = client.put(f"/forms/{session_id}/service", json={"service": "removal"})
    assert changed.json()["desired_slots"] == []


def test_unknown_form_session_is_404(client: TestClient) -> None:
    assert client.get("/forms/missing").status_code == 404


def test_confirm_and_reject_reservations(client: TestClient) -> None:
    pending = client.get("/reservations", params={"status": "pending"}).json()["items"][0]

    wrong_slot = client.post(
        f"/reservations/{pending['id']}/confirm",
        json={"selected_slot": {"date": "2025-12-01", "time": "10:00"}},
    )
    assert wrong_slot.status_code == 409

    confirmed = client.post(
        f"/reservations/{pending['id']}/confirm",
        json={"selected_slot": pending["desired_slots"][0]},
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    assert client.post(f"/reservations/{pending['id']}/reject").status_code == 409
    assert client.get("/reservations/RSV-99999").status_code == 404


def test_template_endpoints(client: TestClient) -> None:
    listing = client.get("/templates").json()
    assert [item["key"] for item in listing["items"]] == ["DEPOSIT_GUIDE", "CONFIRMATION"]

    customized = client.post(
        "/templates/confirmation/customize",
        json={"variables": {"appointmentDate": "2024-05-01", "appointmentTime": "14:00", "customerName": "Kim"}},
    )
    assert customized.status_code == 200
    assert "▶ 예약자 Kim님" in customized.json()["content"]

    assert client.get("/templates/UNKNOWN").status_code == 404


def test_discard_form_session(client: TestClient) -> None:
    session_id = client.post("/forms").json()["session_id"]

    assert client.delete(f"/forms/{session_id}").status_code == 204
    assert client.get(f"/forms/{session_id}").status_code == 404
    assert client.delete(f"/forms/{session_id}").status_code == 404
