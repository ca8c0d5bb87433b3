# app/health.py
from fastapi import APIRouter, Depends

from app.clients.supabase import SupabaseClient
from app.dependencies.services import get_backend_client

router = APIRouter()

@router.get("/health")
def health(client: SupabaseClient = Depends(get_backend_client)):
    return {"ok": True, "mock_data": client.use_mock_data}

@router.get("/mcp/info")
def mcp_info():
    return {"status":"ok","transport":"streamable-http","path":"/mcp"}
