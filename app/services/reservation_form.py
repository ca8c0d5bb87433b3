"""Server-side state and submission workflow of the reservation request form."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.schemas.reservation import (
    BookedSlot,
    Gender,
    PhotoKind,
    PhotoUpload,
    ReservationRecord,
    ReservationRequest,
    ServiceType,
    TimeSlot,
)
from app.services.exceptions import (
    DuplicatePendingReservationError,
    PhotoUploadError,
    ReservationValidationError,
    ServiceError,
    SlotSelectionError,
    TERMS_REQUIRED_MESSAGE,
)
from app.services.reservation import ReservationService

logger = logging.getLogger(__name__)

PHOTOS_REQUIRED_MESSAGE = "정면 사진 2장(눈 뜬 상태, 눈 감은 상태)을 첨부해주세요."

_stamp_lock = threading.Lock()
_last_stamp = 0


def _timestamp_ms() -> int:
    """Millisecond timestamp, strictly increasing within the process."""
    global _last_stamp
    with _stamp_lock:
        _last_stamp = max(int(time.time() * 1000), _last_stamp + 1)
        return _last_stamp


class ReservationDraft(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    terms_agreed: bool = False
    customer_name: str = ""
    gender: Optional[Gender] = None
    age: Optional[int] = None
    phone: str = ""
    desired_service: Optional[ServiceType] = None
    referral_source: str = ""
    desired_slots: List[TimeSlot] = Field(default_factory=list)
    prior_experience: str = ""
    front_photo: Optional[PhotoUpload] = None
    closed_photo: Optional[PhotoUpload] = None


_EDITABLE_FIELDS = {
    "terms_agreed",
    "customer_name",
    "gender",
    "age",
    "phone",
    "referral_source",
    "prior_experience",
}


def _as_slot(slot: TimeSlot | Dict[str, str]) -> TimeSlot:
    return slot if isinstance(slot, TimeSlot) else TimeSlot(**slot)


class ReservationForm:
    """Holds one visitor's draft and drives it through submission.

    ``submit`` runs its backend calls strictly one after another and never
    retries; a failed attempt leaves the draft editable for another try.
    """

    def __init__(self, service: ReservationService, *, max_slots: int | None = None) -> None:
        self._service = service
        self._settings = service.settings
        self.max_slots = max_slots or self._settings.max_desired_slots
        self.draft = ReservationDraft()
        self.booked_slots: List[BookedSlot] = []
        self.submitted = False
        self.reservation: Optional[ReservationRecord] = None

    async def load_booked_slots(self) -> List[BookedSlot]:
        try:
            self.booked_slots = await self._service.fetch_booked_slots()
        except Exception:
            logger.exception("Failed to load booked slots; availability will not be checked")
            self.booked_slots = []
        return self.booked_slots

    def is_booked(self, slot: TimeSlot | Dict[str, str]) -> bool:
        candidate = _as_slot(slot)
        return any(booked.blocks(candidate) for booked in self.booked_slots)

    def update(self, **fields: Any) -> ReservationDraft:
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ReservationValidationError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        candidate = self.draft.model_copy()
        try:
            for name, value in fields.items():
                setattr(candidate, name, value)
        except ValidationError as exc:
            raise ReservationValidationError(f"Invalid value for {name}", cause=exc) from exc
        self.draft = candidate
        return self.draft

    def select_service(self, service_id: ServiceType | str) -> None:
        # slot choices depend on the treatment
        self.draft.desired_service = ServiceType(service_id)
        self.draft.desired_slots = []

    def add_slot(self, slot: TimeSlot | Dict[str, str]) -> List[TimeSlot]:
        candidate = _as_slot(slot)
        current = list(self.draft.desired_slots)
        if any(existing.key() == candidate.key() for existing in current):
            raise SlotSelectionError(f"{candidate.date} {candidate.time} is already selected")
        if len(current) >= self.max_slots:
            raise SlotSelectionError(f"최대 {self.max_slots}개까지 선택할 수 있습니다.")
        if self.is_booked(candidate):
            raise SlotSelectionError(f"{candidate.date} {candidate.time} is already booked")
        current.append(candidate)
        self.draft.desired_slots = current
        return self.draft.desired_slots

    def remove_slot(self, slot: TimeSlot | Dict[str, str]) -> List[TimeSlot]:
        target = _as_slot(slot).key()
        self.draft.desired_slots = [
            existing for existing in self.draft.desired_slots if existing.key() != target
        ]
        return self.draft.desired_slots

    def remove_slot_at(self, index: int) -> List[TimeSlot]:
        current = list(self.draft.desired_slots)
        if not 0 <= index < len(current):
            raise SlotSelectionError(f"No selected slot at position {index}")
        del current[index]
        self.draft.desired_slots = current
        return self.draft.desired_slots

    def set_photo(self, kind: PhotoKind | str, photo: Optional[PhotoUpload]) -> None:
        if PhotoKind(kind) == PhotoKind.front:
            self.draft.front_photo = photo
        else:
            self.draft.closed_photo = photo

    def validate(self) -> ReservationRequest:
        """Check the draft locally; raises before any backend call is made."""
        if self.submitted:
            raise ReservationValidationError("Reservation request already submitted")
        draft = self.draft
        if not draft.terms_agreed:
            raise ReservationValidationError(TERMS_REQUIRED_MESSAGE)
        if len(draft.desired_slots) > self.max_slots:
            raise SlotSelectionError(f"최대 {self.max_slots}개까지 선택할 수 있습니다.")
        blocked = [slot for slot in draft.desired_slots if self.is_booked(slot)]
        if blocked:
            labels = ", ".join(f"{slot.date} {slot.time}" for slot in blocked)
            raise SlotSelectionError(f"Already booked: {labels}")
        if draft.front_photo is None or draft.closed_photo is None:
            raise ReservationValidationError(PHOTOS_REQUIRED_MESSAGE)
        try:
            return ReservationRequest(
                customer_name=draft.customer_name,
                gender=draft.gender,
                age=draft.age,
                phone=draft.phone,
                desired_service=draft.desired_service,
                referral_source=draft.referral_source,
                desired_slots=draft.desired_slots,
                prior_experience=draft.prior_experience,
            )
        except ValidationError as exc:
            fields = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
            raise ReservationValidationError(
                f"Invalid reservation request: {', '.join(fields)}", cause=exc
            ) from exc

    async def submit(self) -> ReservationRecord:
        request = self.validate()

        if await self._service.has_pending(request.phone):
            logger.info("Pending reservation already exists for %s", request.phone)
            raise DuplicatePendingReservationError(request.phone)

        stamp = _timestamp_ms()
        photos = (
            (PhotoKind.front, self.draft.front_photo),
            (PhotoKind.closed, self.draft.closed_photo),
        )
        final_paths: Dict[PhotoKind, str] = {}
        staged_paths: Dict[PhotoKind, str] = {}
        try:
            for kind, photo in photos:
                final_path = f"{self._settings.photo_prefix}/{stamp}_{kind.value}"
                staged_paths[kind] = await self._service.upload_photo(
                    f"{self._settings.staging_prefix}/{final_path}", photo
                )
                final_paths[kind] = final_path
            record = await self._service.create(
                request.to_record(final_paths[PhotoKind.front], final_paths[PhotoKind.closed])
            )
        except ServiceError:
            await self._discard_photos(list(staged_paths.values()))
            raise

        promoted: List[str] = []
        try:
            for kind, staged_path in staged_paths.items():
                await self._service.promote_photo(staged_path, final_paths[kind])
                promoted.append(final_paths[kind])
        except PhotoUploadError:
            leftovers = promoted + [
                staged_paths[kind] for kind in staged_paths if final_paths[kind] not in promoted
            ]
            await self._rollback(record.id, leftovers)
            raise

        logger.info("Reservation %s submitted for %s", record.id, request.customer_name)
        self.reservation = record
        self.submitted = True
        return record

    async def _discard_photos(self, paths: List[str]) -> None:
        if not paths:
            return
        try:
            await self._service.remove_photos(paths)
        except Exception:
            logger.exception("Could not remove orphaned photos %s", paths)

    async def _rollback(self, reservation_id: str, photo_paths: List[str]) -> None:
        try:
            await self._service.delete(reservation_id)
        except Exception:
            # the row still references these objects
            logger.exception(
                "Could not delete reservation %s after photo failure; keeping photos %s",
                reservation_id,
                photo_paths,
            )
            return
        await self._discard_photos(photo_paths)
