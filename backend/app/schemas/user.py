"""User Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

UserRole = Literal["admin", "production_supervisor", "scheduler", "material_handler", "assembler"]


class UserCreate(BaseModel):
    """Schema for creating a user."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: UserRole


class UserResponse(BaseModel):
    """Schema for user responses."""

    id: uuid.UUID
    name: str
    email: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCapabilities(BaseModel):
    """Capabilities granted by a user's role."""

    user_id: uuid.UUID
    role: str
    capabilities: list[str]
