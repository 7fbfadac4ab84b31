"""AssemblyCard Pydantic schemas.

JSON field names are camelCase (``cardNumber``, ``subAssyArea``); requests
may also use the snake_case attribute names.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

CardType = Literal["M", "E", "S", "P", "KB", "DEAD_TIME", "D"]
CardStatus = Literal[
    "scheduled",
    "cleared_for_picking",
    "picking",
    "delivered_to_paint",
    "ready_for_build",
    "assembling",
    "paused",
    "blocked",
    "completed",
]
CardPriority = Literal["A", "B", "C"]
FindingSeverity = Literal["error", "warning"]

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class AssemblyCardCreate(BaseModel):
    """Schema for creating an assembly card. New cards start as ``scheduled``."""

    card_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    type: CardType
    phase: int = Field(..., ge=1, le=5)
    priority: CardPriority = "B"
    duration: float = Field(..., gt=0, description="Planned duration in hours")
    position: int = Field(default=0, ge=0)
    grounded: bool = False
    assigned_to: uuid.UUID | None = None
    assigned_material_handler: uuid.UUID | None = None
    dependencies: list[str] = Field(default_factory=list)
    precedents: list[str] = Field(default_factory=list)
    sub_assy_area: int | None = Field(None, ge=1, le=6)
    gemba_doc_link: str | None = None
    pick_due_date: datetime | None = None
    phase_cleared_to_build_date: datetime | None = None
    assembly_seq: str | None = Field(None, max_length=50)
    material_seq: str | None = Field(None, max_length=50)
    operation_seq: str | None = Field(None, max_length=50)

    model_config = _CAMEL

    @model_validator(mode="after")
    def _sub_assy_area_only_for_s_and_p(self) -> "AssemblyCardCreate":
        if self.sub_assy_area is not None and self.type not in ("S", "P"):
            raise ValueError("subAssyArea can only be set on S or P cards")
        return self


class AssemblyCardUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    card_number: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=200)
    type: CardType | None = None
    phase: int | None = Field(None, ge=1, le=5)
    priority: CardPriority | None = None
    duration: float | None = Field(None, gt=0)
    position: int | None = Field(None, ge=0)
    grounded: bool | None = None
    assigned_to: uuid.UUID | None = None
    assigned_material_handler: uuid.UUID | None = None
    status: CardStatus | None = None
    dependencies: list[str] | None = None
    precedents: list[str] | None = None
    sub_assy_area: int | None = Field(None, ge=1, le=6)
    gemba_doc_link: str | None = None
    pick_due_date: datetime | None = None
    phase_cleared_to_build_date: datetime | None = None
    assembly_seq: str | None = Field(None, max_length=50)
    material_seq: str | None = Field(None, max_length=50)
    operation_seq: str | None = Field(None, max_length=50)

    model_config = _CAMEL

    def changes(self) -> dict:
        """Fields explicitly sent by the client, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class AssemblyCardResponse(BaseModel):
    """Schema for assembly card responses."""

    id: uuid.UUID
    card_number: str
    name: str
    type: str
    phase: int
    priority: str
    duration: float
    position: int
    grounded: bool
    assigned_to: uuid.UUID | None
    assigned_material_handler: uuid.UUID | None
    status: str
    previous_status: str | None
    dependencies: list[str]
    precedents: list[str]
    start_time: datetime | None
    end_time: datetime | None
    elapsed_time: int
    picking_start_time: datetime | None
    actual_duration: float | None
    pick_due_date: datetime | None
    phase_cleared_to_build_date: datetime | None
    sub_assy_area: int | None
    gemba_doc_link: str | None
    assembly_seq: str | None
    material_seq: str | None
    operation_seq: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, **_CAMEL}


class DependencyValidationRequest(BaseModel):
    """Candidate dependency list for a card."""

    dependencies: list[str]


class FindingResponse(BaseModel):
    """One validation finding."""

    kind: str
    dependency: str
    message: str
    severity: FindingSeverity

    model_config = _CAMEL


class ValidationResultResponse(BaseModel):
    """Full dependency validation verdict."""

    card_number: str
    valid: bool
    findings: list[FindingResponse] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)

    model_config = _CAMEL


class BulkResetResponse(BaseModel):
    """Outcome of resetting every card to ``scheduled``."""

    success_count: int
    total_count: int
    failed: list[str] = Field(default_factory=list, description="Card numbers that were not reset")

    model_config = _CAMEL


class BulkDeleteResponse(BaseModel):
    """Outcome of deleting every card."""

    deleted_count: int
    total_count: int

    model_config = _CAMEL


class LaneReorderRequest(BaseModel):
    """New top-to-bottom order of cards in one assembler lane."""

    card_ids: list[uuid.UUID] = Field(..., min_length=1)

    model_config = _CAMEL


class LaneReorderResponse(BaseModel):
    """Result of a lane reorder."""

    updated: int
    skipped_grounded: list[str] = Field(default_factory=list)

    model_config = _CAMEL


class PlannedSlotResponse(BaseModel):
    """Planned start and end of one card in a lane timeline."""

    card_id: uuid.UUID
    card_number: str
    position: int
    duration: float
    status: str
    planned_start: datetime
    planned_end: datetime

    model_config = _CAMEL
