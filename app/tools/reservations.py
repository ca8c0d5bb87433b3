import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from app.dependencies.services import get_reservation_service, new_reservation_form
from app.schemas.reservation import (
    BookedSlot,
    ConfirmReservationRequest,
    PhotoKind,
    PhotoUpload,
    ReservationListResponse,
    ReservationRecord,
    ReservationStatus,
    ServiceOption,
    SubmitResponse,
)
from app.services import ReservationForm, ReservationService
from app.services.catalog import list_services
from app.services.exceptions import ServiceError
from app.tools.errors import http_error

router = APIRouter()

SUBMITTED_MESSAGE = "예약 요청이 접수되었습니다. 원장님 확인 후 예약 확정 메시지를 보내드리겠습니다."


async def read_photo(upload: Optional[UploadFile]) -> Optional[PhotoUpload]:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return PhotoUpload(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )


def _parse_slots(raw: str) -> List[dict]:
    try:
        slots = json.loads(raw or "[]")
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="desired_slots must be a JSON list") from exc
    if not isinstance(slots, list) or not all(isinstance(slot, dict) for slot in slots):
        raise HTTPException(status_code=400, detail="desired_slots must be a JSON list")
    return slots


@router.get("/services", response_model=List[ServiceOption])
async def services():
    return list_services()


@router.get("/booked-slots", response_model=List[BookedSlot])
async def booked_slots(
    service: ReservationService = Depends(get_reservation_service),
):
    try:
        return await service.fetch_booked_slots()
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("", response_model=SubmitResponse, status_code=201)
async def submit_reservation(
    terms_agreed: bool = Form(False),
    customer_name: str = Form(""),
    gender: Optional[str] = Form(None),
    age: Optional[str] = Form(None),
    phone: str = Form(""),
    desired_service: Optional[str] = Form(None),
    desired_slots: str = Form("[]"),
    referral_source: str = Form(""),
    prior_experience: str = Form(""),
    front_photo: Optional[UploadFile] = File(None),
    closed_photo: Optional[UploadFile] = File(None),
    form: ReservationForm = Depends(new_reservation_form),
):
    """Submit a complete reservation request in one multipart call."""
    await form.load_booked_slots()
    try:
        form.update(
            terms_agreed=terms_agreed,
            customer_name=customer_name,
            gender=gender or None,
            age=age or None,
            phone=phone,
            referral_source=referral_source,
            prior_experience=prior_experience,
        )
        if desired_service:
            form.select_service(desired_service)
        for slot in _parse_slots(desired_slots):
            form.add_slot(slot)
        form.set_photo(PhotoKind.front, await read_photo(front_photo))
        form.set_photo(PhotoKind.closed, await read_photo(closed_photo))
        record = await form.submit()
    except ServiceError as exc:
        raise http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SubmitResponse(submitted=form.submitted, message=SUBMITTED_MESSAGE, reservation=record)


@router.get("", response_model=ReservationListResponse)
async def list_reservations(
    status: Optional[ReservationStatus] = None,
    service: ReservationService = Depends(get_reservation_service),
):
    try:
        return await service.list(status)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/{reservation_id}", response_model=ReservationRecord)
async def get_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
):
    try:
        return await service.get(reservation_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/{reservation_id}/confirm", response_model=ReservationRecord)
async def confirm_reservation(
    reservation_id: str,
    req: ConfirmReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    try:
        return await service.confirm(reservation_id, req.selected_slot)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/{reservation_id}/reject", response_model=ReservationRecord)
async def reject_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
):
    try:
        return await service.update_status(reservation_id, ReservationStatus.rejected)
    except ServiceError as exc:
        raise http_error(exc) from exc
