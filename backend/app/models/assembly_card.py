"""AssemblyCard SQLAlchemy model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class AssemblyCard(Base):
    """A unit of assembly work tracked through the production pipeline."""

    __tablename__ = "assembly_cards"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    card_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="M, E, S, P, KB, DEAD_TIME, D"
    )
    phase: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Delivery grouping 1-5"
    )
    priority: Mapped[str] = mapped_column(String(1), nullable=False, server_default="B")
    duration: Mapped[float] = mapped_column(
        Float, nullable=False, comment="Planned duration in hours"
    )
    position: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", comment="Order within the assembler lane"
    )
    grounded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false", comment="Locked in place"
    )

    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assemblers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    assigned_material_handler: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(30), nullable=False, server_default="scheduled"
    )
    previous_status: Mapped[str | None] = mapped_column(
        String(30), nullable=True, comment="State to return to from paused/blocked"
    )
    dependencies: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, server_default="{}"
    )
    precedents: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, server_default="{}"
    )

    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_resumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Start of the current build segment"
    )
    elapsed_time: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", comment="Accumulated build seconds"
    )
    picking_start_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_duration: Mapped[float | None] = mapped_column(
        Float, nullable=True, comment="Measured build time in hours"
    )
    pick_due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    phase_cleared_to_build_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    sub_assy_area: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Sub-assembly area 1-6, S and P cards only"
    )
    gemba_doc_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    assembly_seq: Mapped[str | None] = mapped_column(String(50), nullable=True)
    material_seq: Mapped[str | None] = mapped_column(String(50), nullable=True)
    operation_seq: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
