from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.dependencies.services import get_form_sessions, new_reservation_form
from app.schemas.reservation import (
    FormState,
    FormUpdateRequest,
    PhotoKind,
    ServiceSelectRequest,
    SubmitResponse,
    TimeSlot,
)
from app.services import FormSessionStore, ReservationForm
from app.services.exceptions import ServiceError
from app.tools.errors import http_error
from app.tools.reservations import SUBMITTED_MESSAGE, read_photo

router = APIRouter()


def _state(session_id: str, form: ReservationForm) -> FormState:
    draft = form.draft
    return FormState(
        session_id=session_id,
        terms_agreed=draft.terms_agreed,
        customer_name=draft.customer_name,
        gender=draft.gender,
        age=draft.age,
        phone=draft.phone,
        desired_service=draft.desired_service,
        referral_source=draft.referral_source,
        desired_slots=list(draft.desired_slots),
        prior_experience=draft.prior_experience,
        front_photo=draft.front_photo.filename if draft.front_photo else None,
        closed_photo=draft.closed_photo.filename if draft.closed_photo else None,
        submitted=form.submitted,
        reservation=form.reservation,
    )


def _get_form(session_id: str, sessions: FormSessionStore) -> ReservationForm:
    form = sessions.get(session_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Form session not found")
    return form


@router.post("", response_model=FormState, status_code=201)
async def open_form(
    form: ReservationForm = Depends(new_reservation_form),
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    session_id = sessions.create(form)
    await form.load_booked_slots()
    return _state(session_id, form)


@router.get("/{session_id}", response_model=FormState)
async def get_form(session_id: str, sessions: FormSessionStore = Depends(get_form_sessions)):
    return _state(session_id, _get_form(session_id, sessions))


@router.patch("/{session_id}", response_model=FormState)
async def update_form(
    session_id: str,
    req: FormUpdateRequest,
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    form = _get_form(session_id, sessions)
    try:
        form.update(**req.model_dump(exclude_unset=True))
    except ServiceError as exc:
        raise http_error(exc) from exc
    return _state(session_id, form)


@router.put("/{session_id}/service", response_model=FormState)
async def select_service(
    session_id: str,
    req: ServiceSelectRequest,
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    form = _get_form(session_id, sessions)
    form.select_service(req.service)
    return _state(session_id, form)


@router.post("/{session_id}/slots", response_model=FormState)
async def add_slot(
    session_id: str,
    slot: TimeSlot,
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    form = _get_form(session_id, sessions)
    try:
        form.add_slot(slot)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return _state(session_id, form)


@router.delete("/{session_id}/slots", response_model=FormState)
async def remove_slot(
    session_id: str,
    date: str,
    time: str,
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    form = _get_form(session_id, sessions)
    try:
        form.remove_slot({"date": date, "time": time})
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _state(session_id, form)


@router.delete("/{session_id}/slots/{index}", response_model=FormState)
async def remove_slot_at(
    session_id: str,
    index: int,
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    form = _get_form(session_id, sessions)
    try:
        form.remove_slot_at(index)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return _state(session_id, form)


@router.put("/{session_id}/photos/{kind}", response_model=FormState)
async def upload_photo(
    session_id: str,
    kind: PhotoKind,
    photo: UploadFile = File(...),
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    form = _get_form(session_id, sessions)
    form.set_photo(kind, await read_photo(photo))
    return _state(session_id, form)


@router.post("/{session_id}/submit", response_model=SubmitResponse)
async def submit_form(
    session_id: str,
    sessions: FormSessionStore = Depends(get_form_sessions),
):
    form = _get_form(session_id, sessions)
    try:
        record = await form.submit()
    except ServiceError as exc:
        raise http_error(exc) from exc
    return SubmitResponse(submitted=True, message=SUBMITTED_MESSAGE, reservation=record)


@router.delete("/{session_id}", status_code=204)
async def discard_form(session_id: str, sessions: FormSessionStore = Depends(get_form_sessions)):
    _get_form(session_id, sessions)
    sessions.discard(session_id)
