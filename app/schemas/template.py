from typing import Dict, List

from pydantic import BaseModel, Field


class TemplateSummary(BaseModel):
    key: str
    title: str
    content: str
    requires_customization: bool
    placeholders: List[str] = Field(default_factory=list)


class TemplateListResponse(BaseModel):
    total: int
    items: List[TemplateSummary]


class CustomizeRequest(BaseModel):
    variables: Dict[str, str] = Field(default_factory=dict)


class CustomizeResponse(BaseModel):
    key: str
    title: str
    content: str
