from fastapi import HTTPException

from app.services.exceptions import (
    DuplicatePendingReservationError,
    GENERIC_FAILURE_MESSAGE,
    ReservationNotFoundError,
    ReservationStateError,
    ReservationValidationError,
    ServiceError,
    TemplateNotFoundError,
)


def http_error(exc: ServiceError) -> HTTPException:
    """Map a service failure onto the response the form shows the visitor."""
    if isinstance(exc, ReservationValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DuplicatePendingReservationError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (ReservationNotFoundError, TemplateNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ReservationStateError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=502, detail=GENERIC_FAILURE_MESSAGE)
