import asyncio
import os
import sys
from unittest.mock import AsyncMock

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import Settings
from app.schemas.reservation import (
    PhotoUpload,
    ReservationRequest,
    ReservationStatus,
    TimeSlot,
)
from app.services.exceptions import (
    DownstreamServiceError,
    DuplicatePendingReservationError,
    PhotoUploadError,
    ReservationInsertError,
    ReservationNotFoundError,
    ReservationStateError,
)
from app.services.catalog import list_services
from app.services.form_sessions import FormSessionStore
from app.services.mock_store import get_mock_store, reset_mock_store
from app.services.reservation import ReservationService, flatten_booked_slots
from app.services.reservation_form import ReservationForm


SEED_PENDING_PHONE = "010-3333-4444"
SETTINGS = Settings(use_mock_data=True)


@pytest.fixture(autouse=True)
def _reset_store() -> None:
    reset_mock_store()
    yield
    reset_mock_store()


class MockLatencyClient:
    """Client stub that records simulate_latency calls."""

    def __init__(self) -> None:
        self.use_mock_data = True
        self.latency_called = False

    async def simulate_latency(self) -> None:
        self.latency_called = True


def _remote_client(**methods):
    return type("ClientStub", (), {"use_mock_data": False, **methods})()


def _request(phone: str = "010-7777-8888") -> ReservationRequest:
    return ReservationRequest(
        customer_name="Kim",
        gender="female",
        age=31,
        phone=phone,
        desired_service="shadow",
        desired_slots=[
            TimeSlot(date="2025-05-01", time="14:00"),
            TimeSlot(date="2025-05-02", time="11:00"),
        ],
    )


def test_flatten_booked_slots_annotates_each_desired_slot() -> None:
    rows = [
        {
            "desired_slots": [
                {"date": "2025-05-01", "time": "14:00"},
                {"date": "2025-05-02", "time": "11:00"},
            ],
            "status": "confirmed",
            "selected_slot": {"date": "2025-05-02", "time": "11:00"},
            "desired_service": "natural",
        },
        {"desired_slots": [], "status": "pending", "selected_slot": None, "desired_service": "combo"},
    ]

    slots = flatten_booked_slots(rows)

    assert [(slot.date, slot.time) for slot in slots] == [
        ("2025-05-01", "14:00"),
        ("2025-05-02", "11:00"),
    ]
    assert all(slot.service_type.value == "natural" for slot in slots)
    assert not slots[0].blocks(TimeSlot(date="2025-05-01", time="14:00"))
    assert slots[1].blocks(TimeSlot(date="2025-05-02", time="11:00"))


def test_mock_service_fetches_seeded_booked_slots() -> None:
    client = MockLatencyClient()
    service = ReservationService(client, settings=SETTINGS)

    slots = asyncio.run(service.fetch_booked_slots())

    assert client.latency_called is True
    assert len(slots) == 3
    assert any(slot.status == ReservationStatus.confirmed for slot in slots)


def test_mock_service_create_and_find_pending() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)

    record = asyncio.run(service.create(_request().to_record("a_front", "a_closed")))

    assert record.id.startswith("RSV-")
    assert record.status == ReservationStatus.pending
    assert record.selected_slot is None

    assert asyncio.run(service.has_pending("010-7777-8888")) is True
    assert asyncio.run(service.has_pending("010-0000-0000")) is False
    pending = asyncio.run(service.find_pending_by_phone("010-7777-8888"))
    assert [item.id for item in pending] == [record.id]


def test_mock_repository_rejects_second_pending_for_phone() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)

    with pytest.raises(DuplicatePendingReservationError):
        asyncio.run(service.create(_request(SEED_PENDING_PHONE).to_record(None, None)))


def test_concurrent_creates_for_same_phone_store_one_pending() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)
    record = _request().to_record("front", "closed")

    async def race():
        return await asyncio.gather(
            service.create(dict(record)),
            service.create(dict(record)),
            return_exceptions=True,
        )

    results = asyncio.run(race())

    assert sum(isinstance(result, DuplicatePendingReservationError) for result in results) == 1
    store = get_mock_store()
    assert len(asyncio.run(store.reservations.select(filters={"phone": "010-7777-8888"}))) == 1


def test_confirm_sets_selected_slot_and_blocks_it() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)
    created = asyncio.run(service.create(_request().to_record(None, None)))

    confirmed = asyncio.run(
        service.confirm(created.id, TimeSlot(date="2025-05-02", time="11:00"))
    )

    assert confirmed.status == ReservationStatus.confirmed
    assert confirmed.selected_slot == TimeSlot(date="2025-05-02", time="11:00")
    slots = asyncio.run(service.fetch_booked_slots())
    assert any(slot.blocks(TimeSlot(date="2025-05-02", time="11:00")) for slot in slots)

    with pytest.raises(ReservationStateError):
        asyncio.run(service.confirm(created.id, TimeSlot(date="2025-05-02", time="11:00")))


def test_confirm_requires_one_of_the_desired_slots() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)
    created = asyncio.run(service.create(_request().to_record(None, None)))

    with pytest.raises(ReservationStateError):
        asyncio.run(service.confirm(created.id, TimeSlot(date="2025-06-01", time="10:00")))


def test_status_transitions() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)
    created = asyncio.run(service.create(_request().to_record(None, None)))

    rejected = asyncio.run(service.update_status(created.id, ReservationStatus.rejected))
    assert rejected.status == ReservationStatus.rejected

    with pytest.raises(ReservationStateError):
        asyncio.run(service.update_status(created.id, ReservationStatus.cancelled))

    # a rejected request frees the phone for a new one
    again = asyncio.run(service.create(_request().to_record(None, None)))
    assert again.status == ReservationStatus.pending


def test_get_unknown_reservation_raises() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)

    with pytest.raises(ReservationNotFoundError):
        asyncio.run(service.get("RSV-99999"))


def test_list_filters_by_status() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)

    pending = asyncio.run(service.list(ReservationStatus.pending))
    everything = asyncio.run(service.list())

    assert pending.total == 1
    assert pending.items[0].phone == SEED_PENDING_PHONE
    assert everything.total == 2


def test_mock_photo_upload_promote_and_remove() -> None:
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)
    photo = PhotoUpload(filename="f.jpg", content=b"jpeg", content_type="image/jpeg")

    path = asyncio.run(service.upload_photo("staging/reservation-photos/1_front", photo))
    asyncio.run(service.promote_photo(path, "reservation-photos/1_front"))

    store = get_mock_store()
    assert store.photos.paths() == ["reservation-photos/1_front"]

    with pytest.raises(PhotoUploadError):
        asyncio.run(service.upload_photo("reservation-photos/1_front", photo))
    with pytest.raises(PhotoUploadError):
        asyncio.run(service.promote_photo("staging/missing", "reservation-photos/2_front"))

    asyncio.run(service.remove_photos(["reservation-photos/1_front"]))
    assert store.photos.paths() == []


def test_remote_fetch_booked_slots_selects_columns() -> None:
    client = _remote_client(
        select=AsyncMock(
            return_value=[
                {
                    "desired_slots": [{"date": "2025-05-01", "time": "14:00"}],
                    "status": "pending",
                    "selected_slot": None,
                    "desired_service": "retouch",
                }
            ]
        )
    )
    service = ReservationService(client, settings=SETTINGS)

    slots = asyncio.run(service.fetch_booked_slots())

    client.select.assert_awaited_once_with(
        "reservations", columns="desired_slots,status,selected_slot,desired_service"
    )
    assert slots[0].service_type.value == "retouch"


def test_remote_pending_check_selects_ids_by_phone_and_status() -> None:
    client = _remote_client(select=AsyncMock(return_value=[]))
    service = ReservationService(client, settings=SETTINGS)

    assert asyncio.run(service.has_pending("010-1234-5678")) is False
    client.select.assert_awaited_once_with(
        "reservations", columns="id", filters={"phone": "010-1234-5678", "status": "pending"}
    )


def test_pending_rows_with_unknown_service_are_readable() -> None:
    row = {
        "id": 5,
        "customer_name": "Kim",
        "gender": "female",
        "age": 29,
        "phone": "010-1234-5678",
        "desired_service": "",
        "desired_slots": [{"date": "2025-05-01", "time": "14:00"}],
        "status": "pending",
    }
    client = _remote_client(select=AsyncMock(return_value=[row]))
    service = ReservationService(client, settings=SETTINGS)

    assert asyncio.run(service.has_pending("010-1234-5678")) is True
    pending = asyncio.run(service.find_pending_by_phone("010-1234-5678"))
    assert pending[0].desired_service is None
    assert pending[0].id == "5"


def test_flatten_skips_only_the_unreadable_row() -> None:
    rows = [
        {"desired_slots": [{"date": "2025-05-01"}], "status": "pending"},
        {"desired_slots": [{"date": "2025-05-02", "time": "10:00"}], "status": "archived"},
        {
            "desired_slots": [{"date": "2025-05-03", "time": "10:00"}],
            "status": "confirmed",
            "selected_slot": {"date": "2025-05-03", "time": "10:00"},
            "desired_service": "eyebrow-v1",
        },
    ]

    slots = flatten_booked_slots(rows)

    assert [(slot.date, slot.time) for slot in slots] == [("2025-05-03", "10:00")]
    assert slots[0].service_type is None
    assert slots[0].blocks(TimeSlot(date="2025-05-03", time="10:00"))


def test_remote_create_inserts_single_row() -> None:
    record = _request().to_record("reservation-photos/1_front", "reservation-photos/1_closed")
    client = _remote_client(insert=AsyncMock(return_value=[{"id": 17, **record}]))
    service = ReservationService(client, settings=SETTINGS)

    created = asyncio.run(service.create(record))

    client.insert.assert_awaited_once_with("reservations", [record])
    assert created.id == "17"
    assert created.front_photo_url == "reservation-photos/1_front"


def test_remote_unique_violation_maps_to_duplicate() -> None:
    client = _remote_client(
        insert=AsyncMock(side_effect=DownstreamServiceError("conflict", status_code=409))
    )
    service = ReservationService(client, settings=SETTINGS)

    with pytest.raises(DuplicatePendingReservationError):
        asyncio.run(service.create(_request().to_record(None, None)))


def test_remote_insert_failure_maps_to_insert_error() -> None:
    client = _remote_client(
        insert=AsyncMock(side_effect=DownstreamServiceError("boom", status_code=500))
    )
    service = ReservationService(client, settings=SETTINGS)

    with pytest.raises(ReservationInsertError):
        asyncio.run(service.create(_request().to_record(None, None)))
    assert client.insert.await_count == 1


def test_remote_upload_uses_photos_bucket() -> None:
    client = _remote_client(upload=AsyncMock(return_value={"path": "staging/x_front"}))
    service = ReservationService(client, settings=SETTINGS)
    photo = PhotoUpload(filename="f.png", content=b"png", content_type="image/png")

    path = asyncio.run(service.upload_photo("staging/x_front", photo))

    client.upload.assert_awaited_once_with("photos", "staging/x_front", b"png", "image/png")
    assert path == "staging/x_front"


def test_catalog_groups() -> None:
    assert [option.id.value for option in list_services() if option.group == "brow"] == [
        "natural",
        "combo",
        "shadow",
        "recommend",
        "retouch",
    ]


def test_form_session_store_evicts_oldest() -> None:
    sessions = FormSessionStore(max_sessions=2)
    service = ReservationService(MockLatencyClient(), settings=SETTINGS)
    first = sessions.create(ReservationForm(service))
    second = sessions.create(ReservationForm(service))
    third = sessions.create(ReservationForm(service))

    assert sessions.get(first) is None
    assert sessions.get(second) is not None
    assert sessions.get(third) is not None

    sessions.discard(second)
    assert sessions.get(second) is None
