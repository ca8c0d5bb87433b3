from fastapi import APIRouter

from app.schemas.template import (
    CustomizeRequest,
    CustomizeResponse,
    TemplateListResponse,
    TemplateSummary,
)
from app.services.exceptions import ServiceError
from app.services.message_templates import (
    MESSAGE_TEMPLATES,
    MessageTemplate,
    customize_message,
    get_template,
    placeholders,
)
from app.tools.errors import http_error

router = APIRouter()


def _summary(key: str, template: MessageTemplate) -> TemplateSummary:
    return TemplateSummary(
        key=key,
        title=template.title,
        content=template.content,
        requires_customization=template.requires_customization,
        placeholders=placeholders(template),
    )


@router.get("", response_model=TemplateListResponse)
async def list_templates():
    items = [_summary(key, template) for key, template in MESSAGE_TEMPLATES.items()]
    return TemplateListResponse(total=len(items), items=items)


@router.get("/{key}", response_model=TemplateSummary)
async def read_template(key: str):
    try:
        template = get_template(key)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return _summary(key.strip().upper(), template)


@router.post("/{key}/customize", response_model=CustomizeResponse)
async def customize_template(key: str, req: CustomizeRequest):
    try:
        template = get_template(key)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return CustomizeResponse(
        key=key.strip().upper(),
        title=template.title,
        content=customize_message(template, req.variables),
    )
