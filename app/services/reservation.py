from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.clients.supabase import SupabaseClient
from app.config import Settings, get_settings
from app.schemas.reservation import (
    BookedSlot,
    PhotoUpload,
    ReservationListResponse,
    ReservationRecord,
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
    ServiceError,
)
from app.services.mock_store import PhotoBucket, ReservationRepository, get_mock_store

logger = logging.getLogger(__name__)

BOOKED_SLOT_COLUMNS = ["desired_slots", "status", "selected_slot", "desired_service"]

# confirmation goes through ReservationService.confirm
_ALLOWED_TRANSITIONS = {
    ReservationStatus.pending: {ReservationStatus.rejected, ReservationStatus.cancelled},
    ReservationStatus.confirmed: {ReservationStatus.cancelled, ReservationStatus.completed},
}


def flatten_booked_slots(rows: List[Dict[str, Any]]) -> List[BookedSlot]:
    """Expand each reservation's desired slots into booked-slot entries.

    A row that cannot be read is skipped on its own so the remaining
    reservations still block their slots.
    """
    slots: List[BookedSlot] = []
    for row in rows:
        try:
            slots.extend([
                BookedSlot(
                    date=slot["date"],
                    time=slot["time"],
                    status=row["status"],
                    selected_slot=row.get("selected_slot"),
                    service_type=row.get("desired_service"),
                )
                for slot in row.get("desired_slots") or []
            ])
        except (KeyError, TypeError, ValidationError):
            logger.warning("Skipping unreadable reservation row: %s", row)
    return slots


class ReservationService:
    """Reads and writes reservations and their photos.

    In mock mode everything goes to the shared in-memory store; otherwise the
    hosted backend is called through :class:`SupabaseClient`.
    """

    def __init__(
        self,
        client: SupabaseClient,
        *,
        settings: Settings | None = None,
        repository: ReservationRepository | None = None,
        storage: PhotoBucket | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or get_settings()
        self._repository = repository
        self._storage = storage
        if self._client.use_mock_data:
            store = get_mock_store()
            self._repository = repository or store.reservations
            self._storage = storage or store.photos

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def table(self) -> str:
        return self._settings.reservations_table

    @property
    def bucket(self) -> str:
        return self._settings.photos_bucket

    async def fetch_booked_slots(self) -> List[BookedSlot]:
        logger.debug("Fetching booked slots")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            rows = await self._repository.select(columns=BOOKED_SLOT_COLUMNS)
        else:
            rows = await self._client.select(self.table, columns=",".join(BOOKED_SLOT_COLUMNS))
        return flatten_booked_slots(rows)

    async def has_pending(self, phone: str) -> bool:
        """Whether the phone already has a pending reservation; reads ids only."""
        filters = {"phone": phone, "status": ReservationStatus.pending.value}
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            rows = await self._repository.select(columns=["id"], filters=filters)
        else:
            rows = await self._client.select(self.table, columns="id", filters=filters)
        return bool(rows)

    async def find_pending_by_phone(self, phone: str) -> List[ReservationRecord]:
        filters = {"phone": phone, "status": ReservationStatus.pending.value}
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            rows = await self._repository.select(filters=filters)
        else:
            rows = await self._client.select(self.table, filters=filters)
        return [ReservationRecord(**row) for row in rows]

    async def create(self, record: Dict[str, Any]) -> ReservationRecord:
        logger.info("Creating reservation for %s", record.get("customer_name"))
        try:
            if self._client.use_mock_data:
                await self._client.simulate_latency()
                stored = await self._repository.insert(record)
            else:
                rows = await self._client.insert(self.table, [record])
                if not rows:
                    raise ReservationInsertError("Backend returned no reservation row")
                stored = rows[0]
        except DownstreamServiceError as exc:
            if exc.status_code == 409:
                raise DuplicatePendingReservationError(record["phone"], cause=exc) from exc
            raise ReservationInsertError("Failed to create reservation", cause=exc) from exc
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while creating reservation")
            raise ReservationInsertError("Failed to create reservation", cause=exc) from exc
        return ReservationRecord(**stored)

    async def delete(self, reservation_id: str) -> None:
        logger.info("Deleting reservation %s", reservation_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            await self._repository.delete(reservation_id)
            return
        await self._client.delete(self.table, {"id": reservation_id})

    async def get(self, reservation_id: str) -> ReservationRecord:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            row = await self._repository.get(reservation_id)
        else:
            rows = await self._client.select(self.table, filters={"id": reservation_id})
            row = rows[0] if rows else None
        if row is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        return ReservationRecord(**row)

    async def list(self, status: Optional[ReservationStatus] = None) -> ReservationListResponse:
        filters = {"status": status.value} if status else None
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            rows = await self._repository.select(filters=filters)
        else:
            rows = await self._client.select(self.table, filters=filters)
        items = [ReservationRecord(**row) for row in rows]
        return ReservationListResponse(total=len(items), items=items)

    async def _update(self, reservation_id: str, values: Dict[str, Any]) -> ReservationRecord:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            row = await self._repository.update(reservation_id, values)
        else:
            rows = await self._client.update(self.table, values, {"id": reservation_id})
            row = rows[0] if rows else None
        if row is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        return ReservationRecord(**row)

    async def confirm(self, reservation_id: str, selected_slot: TimeSlot) -> ReservationRecord:
        reservation = await self.get(reservation_id)
        if reservation.status != ReservationStatus.pending:
            raise ReservationStateError(
                f"Reservation {reservation_id} is {reservation.status.value}, not pending"
            )
        if selected_slot.key() not in {slot.key() for slot in reservation.desired_slots}:
            raise ReservationStateError("Selected slot is not one of the desired slots")
        logger.info("Confirming reservation %s for %s %s", reservation_id, selected_slot.date, selected_slot.time)
        return await self._update(
            reservation_id,
            {
                "status": ReservationStatus.confirmed.value,
                "selected_slot": selected_slot.model_dump(),
            },
        )

    async def update_status(self, reservation_id: str, status: ReservationStatus) -> ReservationRecord:
        reservation = await self.get(reservation_id)
        if status not in _ALLOWED_TRANSITIONS.get(reservation.status, set()):
            raise ReservationStateError(
                f"Cannot move reservation {reservation_id} from "
                f"{reservation.status.value} to {status.value}"
            )
        logger.info("Marking reservation %s as %s", reservation_id, status.value)
        return await self._update(reservation_id, {"status": status.value})

    async def upload_photo(self, path: str, photo: PhotoUpload) -> str:
        logger.info("Uploading photo %s (%d bytes)", path, len(photo.content))
        try:
            if self._client.use_mock_data:
                await self._client.simulate_latency()
                data = await self._storage.upload(path, photo.content, photo.content_type)
            else:
                data = await self._client.upload(self.bucket, path, photo.content, photo.content_type)
        except Exception as exc:
            logger.exception("Photo upload failed for %s", path)
            raise PhotoUploadError("Failed to upload photo", cause=exc) from exc
        return data["path"]

    async def promote_photo(self, staged_path: str, final_path: str) -> None:
        try:
            if self._client.use_mock_data:
                await self._client.simulate_latency()
                await self._storage.move(staged_path, final_path)
            else:
                await self._client.move(self.bucket, staged_path, final_path)
        except Exception as exc:
            logger.exception("Could not promote photo %s", staged_path)
            raise PhotoUploadError("Failed to store photo", cause=exc) from exc

    async def remove_photos(self, paths: List[str]) -> None:
        if not paths:
            return
        logger.info("Removing photos %s", paths)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            await self._storage.remove(paths)
            return
        await self._client.remove(self.bucket, paths)
