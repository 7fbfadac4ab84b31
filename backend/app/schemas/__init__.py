"""Pydantic v2 schemas for request/response validation."""

from app.schemas.andon_issue import AndonIssueCreate, AndonIssueResponse, AndonIssueUpdate
from app.schemas.assembler import AssemblerCreate, AssemblerResponse, AssemblerUpdate
from app.schemas.assembly_card import (
    AssemblyCardCreate,
    AssemblyCardResponse,
    AssemblyCardUpdate,
    BulkDeleteResponse,
    BulkResetResponse,
    DependencyValidationRequest,
    FindingResponse,
    LaneReorderRequest,
    LaneReorderResponse,
    PlannedSlotResponse,
    ValidationResultResponse,
)
from app.schemas.user import UserCapabilities, UserCreate, UserResponse

__all__ = [
    "AndonIssueCreate",
    "AndonIssueResponse",
    "AndonIssueUpdate",
    "AssemblerCreate",
    "AssemblerResponse",
    "AssemblerUpdate",
    "AssemblyCardCreate",
    "AssemblyCardResponse",
    "AssemblyCardUpdate",
    "BulkDeleteResponse",
    "BulkResetResponse",
    "DependencyValidationRequest",
    "FindingResponse",
    "LaneReorderRequest",
    "LaneReorderResponse",
    "PlannedSlotResponse",
    "UserCapabilities",
    "UserCreate",
    "UserResponse",
    "ValidationResultResponse",
]
