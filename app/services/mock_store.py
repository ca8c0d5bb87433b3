from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.schemas.reservation import ReservationStatus
from app.services.exceptions import DuplicatePendingReservationError


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class ReservationRepository(_BaseRepository):
    """In-memory stand-in for the hosted ``reservations`` table.

    Inserts hold a lock across the pending-phone check and the write, which
    plays the role of the backend's partial unique index on
    ``(phone) where status = 'pending'``.
    """

    def __init__(self) -> None:
        super().__init__("RSV")
        self._reservations: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._seed_defaults()

    def _seed_defaults(self) -> None:
        seeds = [
            {
                "customer_name": "이서연",
                "gender": "female",
                "age": 29,
                "phone": "010-1111-2222",
                "desired_service": "natural",
                "referral_source": "인스타그램 광고",
                "desired_slots": [
                    {"date": "2025-03-04", "time": "11:00"},
                    {"date": "2025-03-05", "time": "14:00"},
                ],
                "prior_experience": "",
                "front_photo_url": None,
                "closed_photo_url": None,
                "status": "confirmed",
                "selected_slot": {"date": "2025-03-04", "time": "11:00"},
            },
            {
                "customer_name": "박지훈",
                "gender": "male",
                "age": 34,
                "phone": "010-3333-4444",
                "desired_service": "shadow",
                "referral_source": "지인추천",
                "desired_slots": [{"date": "2025-03-06", "time": "16:00"}],
                "prior_experience": "3년 전 시술",
                "front_photo_url": None,
                "closed_photo_url": None,
                "status": "pending",
                "selected_slot": None,
            },
        ]
        for record in seeds:
            reservation_id = self._next_id()
            self._reservations[reservation_id] = {
                "id": reservation_id,
                **record,
                "created_at": _utc_now_iso(),
            }

    @staticmethod
    def _matches(record: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
        return all(record.get(column) == value for column, value in (filters or {}).items())

    async def select(
        self,
        columns: Iterable[str] | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> List[Dict[str, Any]]:
        rows = [
            dict(record)
            for record in self._reservations.values()
            if self._matches(record, filters)
        ]
        if columns is None:
            return rows
        wanted = list(columns)
        return [{column: row.get(column) for column in wanted} for row in rows]

    async def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            if record.get("status") == ReservationStatus.pending.value:
                for existing in self._reservations.values():
                    if (
                        existing["phone"] == record["phone"]
                        and existing["status"] == ReservationStatus.pending.value
                    ):
                        raise DuplicatePendingReservationError(record["phone"])
            reservation_id = self._next_id()
            stored = {
                "id": reservation_id,
                "selected_slot": None,
                **record,
                "created_at": _utc_now_iso(),
            }
            self._reservations[reservation_id] = stored
            return dict(stored)

    async def update(self, reservation_id: str, values: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._lock:
            record = self._reservations.get(reservation_id)
            if record is None:
                return None
            record.update(values)
            return dict(record)

    async def get(self, reservation_id: str) -> Optional[Dict[str, Any]]:
        record = self._reservations.get(reservation_id)
        return dict(record) if record is not None else None

    async def delete(self, reservation_id: str) -> bool:
        return self._reservations.pop(reservation_id, None) is not None


class PhotoBucket:
    """In-memory object storage bucket keyed by object path."""

    def __init__(self, name: str = "photos") -> None:
        self.name = name
        self._objects: Dict[str, Dict[str, Any]] = {}

    async def upload(self, path: str, content: bytes, content_type: str) -> Dict[str, Any]:
        if path in self._objects:
            raise FileExistsError(f"Object already exists: {path}")
        self._objects[path] = {
            "path": path,
            "content": bytes(content),
            "content_type": content_type,
            "size": len(content),
            "uploaded_at": _utc_now_iso(),
        }
        return {"path": path}

    async def move(self, source: str, destination: str) -> None:
        if source not in self._objects:
            raise FileNotFoundError(f"Object not found: {source}")
        if destination in self._objects:
            raise FileExistsError(f"Object already exists: {destination}")
        obj = self._objects.pop(source)
        obj["path"] = destination
        self._objects[destination] = obj

    async def remove(self, paths: Iterable[str]) -> int:
        return sum(1 for path in paths if self._objects.pop(path, None) is not None)

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        obj = self._objects.get(path)
        return dict(obj) if obj is not None else None

    def paths(self) -> List[str]:
        return sorted(self._objects)


@dataclass
class MockDataStore:
    reservations: ReservationRepository
    photos: PhotoBucket


_mock_store: Optional[MockDataStore] = None


def get_mock_store() -> MockDataStore:
    global _mock_store
    if _mock_store is None:
        _mock_store = MockDataStore(
            reservations=ReservationRepository(),
            photos=PhotoBucket(),
        )
    return _mock_store


def reset_mock_store() -> None:
    global _mock_store
    _mock_store = None
