"""AndonIssue Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

AndonStatus = Literal["unresolved", "being_worked_on", "resolved"]

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class AndonIssueCreate(BaseModel):
    """Schema for raising an andon alert against a card."""

    assembly_card_number: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=4000)
    submitted_by: str = Field(..., min_length=1, max_length=100)
    photo_path: str | None = None
    assigned_to: uuid.UUID | None = None

    model_config = _CAMEL


class AndonIssueUpdate(BaseModel):
    """Assignment or status change for an andon issue."""

    assigned_to: uuid.UUID | None = None
    status: AndonStatus | None = None

    model_config = _CAMEL


class AndonIssueResponse(BaseModel):
    """Schema for andon issue responses."""

    id: int
    issue_number: str
    assembly_card_number: str
    description: str
    photo_path: str | None
    submitted_by: str
    assigned_to: uuid.UUID | None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, **_CAMEL}
