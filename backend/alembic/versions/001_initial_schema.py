"""Initial schema.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all initial tables."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(30), nullable=False, comment="admin, production_supervisor, scheduler, material_handler, assembler"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    # --- assemblers ---
    op.create_table(
        "assemblers",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, comment="mechanical, electrical, final, qc"),
        sa.Column("machine_type", sa.String(50), nullable=True),
        sa.Column("machine_number", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), server_default="available", nullable=False),
        sa.Column("assigned_user", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["assigned_user"], ["users.id"], ondelete="SET NULL"),
    )

    # --- assembly_cards ---
    op.create_table(
        "assembly_cards",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("card_number", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, comment="M, E, S, P, KB, DEAD_TIME, D"),
        sa.Column("phase", sa.Integer(), nullable=False, comment="Delivery grouping 1-5"),
        sa.Column("priority", sa.String(1), server_default="B", nullable=False),
        sa.Column("duration", sa.Float(), nullable=False, comment="Planned duration in hours"),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False, comment="Order within the assembler lane"),
        sa.Column("grounded", sa.Boolean(), server_default="false", nullable=False, comment="Locked in place"),
        sa.Column("assigned_to", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assigned_material_handler", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(30), server_default="scheduled", nullable=False),
        sa.Column("previous_status", sa.String(30), nullable=True, comment="State to return to from paused/blocked"),
        sa.Column("dependencies", postgresql.ARRAY(sa.Text()), server_default="{}", nullable=False),
        sa.Column("precedents", postgresql.ARRAY(sa.Text()), server_default="{}", nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_resumed_at", sa.DateTime(timezone=True), nullable=True, comment="Start of the current build segment"),
        sa.Column("elapsed_time", sa.Integer(), server_default="0", nullable=False, comment="Accumulated build seconds"),
        sa.Column("picking_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_duration", sa.Float(), nullable=True, comment="Measured build time in hours"),
        sa.Column("pick_due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("phase_cleared_to_build_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sub_assy_area", sa.Integer(), nullable=True, comment="Sub-assembly area 1-6, S and P cards only"),
        sa.Column("gemba_doc_link", sa.Text(), nullable=True),
        sa.Column("assembly_seq", sa.String(50), nullable=True),
        sa.Column("material_seq", sa.String(50), nullable=True),
        sa.Column("operation_seq", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("card_number"),
        sa.ForeignKeyConstraint(["assigned_to"], ["assemblers.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_material_handler"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_assembly_cards_assigned_to", "assembly_cards", ["assigned_to"])

    # --- andon_issues ---
    op.create_table(
        "andon_issues",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("issue_number", sa.String(20), nullable=False),
        sa.Column("assembly_card_number", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("photo_path", sa.Text(), nullable=True),
        sa.Column("submitted_by", sa.String(100), nullable=False),
        sa.Column("assigned_to", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(20), server_default="unresolved", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("issue_number"),
        sa.ForeignKeyConstraint(["assigned_to"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_andon_issues_assembly_card_number", "andon_issues", ["assembly_card_number"])


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_index("ix_andon_issues_assembly_card_number", table_name="andon_issues")
    op.drop_table("andon_issues")
    op.drop_index("ix_assembly_cards_assigned_to", table_name="assembly_cards")
    op.drop_table("assembly_cards")
    op.drop_table("assemblers")
    op.drop_table("users")
