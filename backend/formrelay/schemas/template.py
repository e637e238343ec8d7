"""
FormRelay Backend — Template Schemas
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from formrelay.schemas.common import APIModel, decode_json_text
from formrelay.schemas.user import UserSummary


class TemplateOut(APIModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str
    category: str
    blocks: Any
    created_at: datetime
    updated_at: datetime
    created_by: Optional[UserSummary] = None

    @field_validator("blocks", mode="before")
    @classmethod
    def decode_blocks(cls, v: Any) -> Any:
        return decode_json_text(v)


class TemplateEnvelope(APIModel):
    success: bool = True
    message: str
    template: TemplateOut


class TemplateListResponse(APIModel):
    success: bool = True
    count: int
    templates: List[TemplateOut]


class CreateTemplateRequest(APIModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=64)
    blocks: List[Any]


class UpdateTemplateRequest(APIModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=64)
    blocks: Optional[List[Any]] = None
