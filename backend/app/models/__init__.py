"""SQLAlchemy ORM models."""

from app.models.andon_issue import AndonIssue
from app.models.assembler import Assembler
from app.models.assembly_card import AssemblyCard
from app.models.user import User

__all__ = [
    "AndonIssue",
    "Assembler",
    "AssemblyCard",
    "User",
]
