"""SQLAlchemy ORM models for trips, generation state, plans and AI request logs."""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JsonColumn = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Trip(Base):
    """Trip table - the trip facts generation reads."""

    __tablename__ = "trip"
    __table_args__ = (Index("idx_trip_user", "user_id"),)

    trip_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    destination: Mapped[str] = mapped_column(Text, nullable=False)
    origin: Mapped[str] = mapped_column(Text, nullable=False, default="")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    travelers: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    generation_state: Mapped["GenerationState | None"] = relationship(
        "GenerationState", back_populates="trip", uselist=False
    )
    plan: Mapped["TripPlan | None"] = relationship("TripPlan", back_populates="trip", uselist=False)


class GenerationState(Base):
    """Generation state table - one durable progress record per trip."""

    __tablename__ = "generation_state"
    __table_args__ = (Index("idx_generation_state_status", "status"),)

    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trip.trip_id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    current_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pending_days: Mapped[list[int]] = mapped_column(JsonColumn, nullable=False, default=list)
    completed_days: Mapped[list[int]] = mapped_column(JsonColumn, nullable=False, default=list)
    failed_days: Mapped[list[dict[str, Any]]] = mapped_column(
        JsonColumn, nullable=False, default=list
    )
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    summary_result: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, nullable=True)
    places_catalog: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, nullable=True)
    preferences: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    linking_metrics: Mapped[dict[str, Any]] = mapped_column(JsonColumn, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    trip: Mapped["Trip"] = relationship("Trip", back_populates="generation_state")


class TripPlan(Base):
    """Trip plan table - summary, accommodations and itinerary days as one document."""

    __tablename__ = "trip_plan"

    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trip.trip_id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JsonColumn, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    trip: Mapped["Trip"] = relationship("Trip", back_populates="plan")


class AIRequestLog(Base):
    """AI request log table - one row per completion call, for cost tracking."""

    __tablename__ = "ai_request_log"
    __table_args__ = (Index("idx_ai_request_log_trip_started", "trip_id", "started_at"),)

    request_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[str] = mapped_column(Text, nullable=False)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JsonColumn, nullable=False, default=dict
    )
