from __future__ import annotations

from datetime import date as date_type
from datetime import datetime as datetime_type
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class Gender(str, Enum):
    female = "female"
    male = "male"


class ServiceType(str, Enum):
    natural = "natural"
    combo = "combo"
    shadow = "shadow"
    recommend = "recommend"
    retouch = "retouch"
    brownline = "brownline"
    removal = "removal"


def _known_service(value: Any) -> Any:
    """Stored rows may carry an empty or retired service id; read it as unset."""
    if value is None or isinstance(value, ServiceType):
        return value
    return value if value in {member.value for member in ServiceType} else None


StoredService = Annotated[Optional[ServiceType], BeforeValidator(_known_service)]


class ReservationStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    rejected = "rejected"
    cancelled = "cancelled"
    completed = "completed"


class PhotoKind(str, Enum):
    front = "front"
    closed = "closed"


class TimeSlot(BaseModel):
    """A candidate appointment slot. Equality is structural on (date, time)."""

    model_config = ConfigDict(frozen=True)

    date: str  # YYYY-MM-DD
    time: str  # HH:MM

    @field_validator("date")
    def _check_date(cls, value: str) -> str:
        date_type.fromisoformat(value)
        return value

    @field_validator("time")
    def _check_time(cls, value: str) -> str:
        datetime_type.strptime(value, "%H:%M")
        return value

    def key(self) -> tuple[str, str]:
        return (self.date, self.time)


class BookedSlot(BaseModel):
    date: str
    time: str
    status: ReservationStatus
    selected_slot: Optional[TimeSlot] = None
    service_type: StoredService = None

    def blocks(self, slot: TimeSlot) -> bool:
        """A slot is taken once staff confirmed a reservation on it."""
        return (
            self.status == ReservationStatus.confirmed
            and self.selected_slot is not None
            and self.selected_slot.key() == slot.key()
        )


class PhotoUpload(BaseModel):
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class ReservationRequest(BaseModel):
    """Validated reservation ready to be written to the backend."""

    customer_name: str = Field(..., min_length=1)
    gender: Gender
    age: int = Field(..., gt=0)
    phone: str = Field(..., min_length=1)
    desired_service: ServiceType
    referral_source: str = ""
    desired_slots: List[TimeSlot] = Field(..., min_length=1)
    prior_experience: str = ""

    @field_validator("customer_name", "phone")
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def to_record(
        self,
        front_photo_url: Optional[str],
        closed_photo_url: Optional[str],
    ) -> Dict[str, Any]:
        """Return the row written to the reservations table."""
        return {
            "customer_name": self.customer_name,
            "gender": self.gender.value,
            "age": int(self.age),
            "phone": self.phone,
            "desired_service": self.desired_service.value,
            "referral_source": self.referral_source,
            "desired_slots": [slot.model_dump() for slot in self.desired_slots],
            "prior_experience": self.prior_experience,
            "front_photo_url": front_photo_url,
            "closed_photo_url": closed_photo_url,
            "status": ReservationStatus.pending.value,
        }


class ReservationRecord(BaseModel):
    id: str
    customer_name: str
    gender: Gender
    age: int
    phone: str
    desired_service: StoredService = None
    referral_source: Optional[str] = None
    desired_slots: List[TimeSlot]
    prior_experience: Optional[str] = None
    front_photo_url: Optional[str] = None
    closed_photo_url: Optional[str] = None
    status: ReservationStatus
    selected_slot: Optional[TimeSlot] = None
    created_at: Optional[str] = None

    @field_validator("id", mode="before")
    def _stringify_id(cls, value: Any) -> str:
        return str(value)


class ReservationListResponse(BaseModel):
    total: int
    items: List[ReservationRecord]


class ConfirmReservationRequest(BaseModel):
    selected_slot: TimeSlot


class SubmitResponse(BaseModel):
    submitted: bool
    message: str
    reservation: Optional[ReservationRecord] = None


class ServiceOption(BaseModel):
    id: ServiceType
    name: str
    group: str
    description: str


class FormUpdateRequest(BaseModel):
    terms_agreed: Optional[bool] = None
    customer_name: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[int] = None
    phone: Optional[str] = None
    referral_source: Optional[str] = None
    prior_experience: Optional[str] = None


class ServiceSelectRequest(BaseModel):
    service: ServiceType


class FormState(BaseModel):
    session_id: str
    terms_agreed: bool
    customer_name: str
    gender: Optional[Gender] = None
    age: Optional[int] = None
    phone: str
    desired_service: Optional[ServiceType] = None
    referral_source: str
    desired_slots: List[TimeSlot]
    prior_experience: str
    front_photo: Optional[str] = None
    closed_photo: Optional[str] = None
    submitted: bool
    reservation: Optional[ReservationRecord] = None
