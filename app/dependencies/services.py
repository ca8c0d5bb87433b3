from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.clients.supabase import SupabaseClient
from app.config import Settings, get_settings
from app.services import FormSessionStore, ReservationForm, ReservationService
from app.services.form_sessions import form_sessions


@lru_cache(maxsize=1)
def get_backend_client_cached() -> SupabaseClient:
    settings = get_settings()
    return SupabaseClient(
        settings.supabase_url,
        api_key=settings.supabase_key,
        timeout=settings.backend_timeout,
        use_mock_data=settings.use_mock_data,
    )


def get_backend_client(settings: Settings = Depends(get_settings)) -> SupabaseClient:
    return get_backend_client_cached()


def get_reservation_service(
    client: SupabaseClient = Depends(get_backend_client),
    settings: Settings = Depends(get_settings),
) -> ReservationService:
    return ReservationService(client, settings=settings)


def new_reservation_form(
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationForm:
    return ReservationForm(service)


def get_form_sessions() -> FormSessionStore:
    return form_sessions
