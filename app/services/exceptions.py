GENERIC_FAILURE_MESSAGE = "예약 요청 중 오류가 발생했습니다."
TERMS_REQUIRED_MESSAGE = "예약 전 숙지사항 확인이 필요합니다."
PENDING_EXISTS_MESSAGE = "이미 처리 중인 예약이 있습니다."


class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class DownstreamServiceError(ServiceError):
    """Raised when the hosted backend returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class ReservationValidationError(ServiceError):
    """Raised before any backend call when the draft cannot be submitted."""


class SlotSelectionError(ReservationValidationError):
    """Raised when a slot cannot be added to the draft."""


class DuplicatePendingReservationError(ServiceError):
    """Raised when the phone number already has a pending reservation."""

    def __init__(self, phone: str, *, cause: Exception | None = None):
        super().__init__(PENDING_EXISTS_MESSAGE, cause=cause)
        self.phone = phone


class PhotoUploadError(ServiceError):
    """Raised when a reference photo cannot be stored."""


class ReservationInsertError(ServiceError):
    """Raised when the reservation record cannot be written."""


class ReservationNotFoundError(ServiceError):
    """Raised when a reservation id is unknown."""


class ReservationStateError(ServiceError):
    """Raised when a status transition is not allowed."""


class TemplateNotFoundError(ServiceError):
    """Raised when a message template key is unknown."""
