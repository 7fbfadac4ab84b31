"""Assembler Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

AssemblerStatus = Literal["available", "busy", "offline"]

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class AssemblerCreate(BaseModel):
    """Schema for creating an assembler."""

    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., max_length=20, description="mechanical, electrical, final or qc")
    machine_type: str | None = Field(None, max_length=50)
    machine_number: str | None = Field(None, max_length=50)
    status: AssemblerStatus = "available"
    assigned_user: uuid.UUID | None = None

    model_config = _CAMEL


class AssemblerUpdate(BaseModel):
    """Partial assembler update."""

    name: str | None = Field(None, min_length=1, max_length=100)
    type: str | None = Field(None, max_length=20)
    machine_type: str | None = Field(None, max_length=50)
    machine_number: str | None = Field(None, max_length=50)
    status: AssemblerStatus | None = None
    assigned_user: uuid.UUID | None = None

    model_config = _CAMEL


class AssemblerResponse(BaseModel):
    """Schema for assembler responses."""

    id: uuid.UUID
    name: str
    type: str
    machine_type: str | None
    machine_number: str | None
    status: str
    assigned_user: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True, **_CAMEL}
