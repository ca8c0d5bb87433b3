# app/mcp_server.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from mcp.server.fastmcp import Context, FastMCP
from pydantic import BaseModel, Field

from app.dependencies.services import get_backend_client_cached
from app.schemas.reservation import ReservationRecord, ReservationStatus
from app.services import ReservationService
from app.services.message_templates import (
    MESSAGE_TEMPLATES,
    customize_message,
    get_template,
    placeholders,
)

log = logging.getLogger("prebook.mcp")

# Name shown to clients
mcp = FastMCP("prebook_mcp")

# --------------------------
# Tool I/O models
# --------------------------
class TemplateInfo(BaseModel):
    key: str
    title: str
    requires_customization: bool
    placeholders: List[str] = Field(default_factory=list)

class TemplateListOutput(BaseModel):
    templates: List[TemplateInfo]

class TemplateCustomizeInput(BaseModel):
    key: str = Field(..., description="Template key, e.g. 'CONFIRMATION'")
    variables: Dict[str, str] = Field(
        default_factory=dict,
        description="Placeholder values, e.g. {'customerName': 'Kim'}",
    )

class TemplateCustomizeOutput(BaseModel):
    key: str
    title: str
    content: str

class PendingReservationsInput(BaseModel):
    phone: Optional[str] = Field(None, description="Only reservations for this phone number")

class PendingReservationsOutput(BaseModel):
    reservations: List[ReservationRecord]

# --------------------------
# Tools
# --------------------------
@mcp.tool(name="templates_list", description="List the canned customer message templates")
async def templates_list(ctx: Context) -> TemplateListOutput:
    out = TemplateListOutput(
        templates=[
            TemplateInfo(
                key=key,
                title=template.title,
                requires_customization=template.requires_customization,
                placeholders=placeholders(template),
            )
            for key, template in MESSAGE_TEMPLATES.items()
        ]
    )
    log.debug("templates_list output=%s", out.model_dump())
    return out

@mcp.tool(name="templates_customize", description="Fill a message template for one customer")
async def templates_customize(input: TemplateCustomizeInput, ctx: Context) -> TemplateCustomizeOutput:
    log.debug("templates_customize input=%s", input.model_dump())
    template = get_template(input.key)
    return TemplateCustomizeOutput(
        key=input.key.strip().upper(),
        title=template.title,
        content=customize_message(template, input.variables),
    )

@mcp.tool(name="reservations_pending", description="List reservation requests awaiting staff review")
async def reservations_pending(input: PendingReservationsInput, ctx: Context) -> PendingReservationsOutput:
    log.debug("reservations_pending input=%s", input.model_dump())
    service = ReservationService(get_backend_client_cached())
    if input.phone:
        items = await service.find_pending_by_phone(input.phone)
    else:
        items = (await service.list(ReservationStatus.pending)).items
    return PendingReservationsOutput(reservations=items)

@mcp.tool(name="ping", description="Health check")
async def ping(message: str) -> str:
    log.debug("ping %s", message)
    return f"pong: {message}"
