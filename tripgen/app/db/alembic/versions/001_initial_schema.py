"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- trip
- generation_state (one durable progress record per trip)
- trip_plan
- ai_request_log
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create all tables."""
    # trip table
    op.create_table(
        "trip",
        sa.Column("trip_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("destination", sa.Text(), nullable=False),
        sa.Column("origin", sa.Text(), nullable=False, server_default=""),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("travelers", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_trip_user", "trip", ["user_id"])

    # generation_state table
    op.create_table(
        "generation_state",
        sa.Column("trip_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("current_day", sa.Integer(), nullable=True),
        sa.Column("pending_days", JSON_TYPE, nullable=False),
        sa.Column("completed_days", JSON_TYPE, nullable=False),
        sa.Column("failed_days", JSON_TYPE, nullable=False),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("summary_result", JSON_TYPE, nullable=True),
        sa.Column("places_catalog", JSON_TYPE, nullable=True),
        sa.Column("preferences", JSON_TYPE, nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("linking_metrics", JSON_TYPE, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["trip_id"], ["trip.trip_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_generation_state_status", "generation_state", ["status"])

    # trip_plan table
    op.create_table(
        "trip_plan",
        sa.Column("trip_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("data", JSON_TYPE, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["trip_id"], ["trip.trip_id"], ondelete="CASCADE"),
    )

    # ai_request_log table
    op.create_table(
        "ai_request_log",
        sa.Column("request_id", sa.Uuid(), primary_key=True),
        sa.Column("trip_id", sa.Uuid(), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("endpoint", sa.Text(), nullable=False),
        sa.Column("provider", sa.Text(), nullable=False),
        sa.Column("model", sa.Text(), nullable=False),
        sa.Column("input_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("output_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata", JSON_TYPE, nullable=False),
    )
    op.create_index(
        "idx_ai_request_log_trip_started", "ai_request_log", ["trip_id", "started_at"]
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_ai_request_log_trip_started", table_name="ai_request_log")
    op.drop_table("ai_request_log")
    op.drop_table("trip_plan")
    op.drop_index("idx_generation_state_status", table_name="generation_state")
    op.drop_table("generation_state")
    op.drop_index("idx_trip_user", table_name="trip")
    op.drop_table("trip")
