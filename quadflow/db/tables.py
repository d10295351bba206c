"""SQLAlchemy ORM table models for QuadFlow.

Categories:
- IMMUTABLE: FlowTransition, Endorsement (append-only rows)
- OPERATIONAL: Participant (administrative updates), Flow (stage + version)

Roles and circles are configuration and are not stored.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from quadflow.db.session import Base

# JSONB on PostgreSQL, plain JSON on SQLite (for tests)
FlexJSON = JSONB().with_variant(JSON(), "sqlite")


# ---------------------------------------------------------------------------
# Participants: OPERATIONAL
# ---------------------------------------------------------------------------


class ParticipantRow(Base):
    __tablename__ = "participants"

    participant_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    skill: Mapped[str] = mapped_column(String(20), nullable=False)
    trust: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Flows: OPERATIONAL
# ---------------------------------------------------------------------------


class FlowRow(Base):
    """Current stage of a flow. ``version`` backs the optimistic stage update."""

    __tablename__ = "flows"

    flow_id: Mapped[UUID] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    stage: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Audit: IMMUTABLE
# ---------------------------------------------------------------------------


class FlowTransitionRow(Base):
    """Append-only transition record. Never updated after insert."""

    __tablename__ = "flow_transitions"
    __table_args__ = (
        Index("ix_flow_transitions_flow_ts", "flow_id", "timestamp"),
    )

    record_id: Mapped[UUID] = mapped_column(primary_key=True)
    flow_id: Mapped[UUID] = mapped_column(ForeignKey("flows.flow_id"), nullable=False)
    from_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    to_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    participant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    role_id: Mapped[str] = mapped_column(String(50), nullable=False)
    participation_level: Mapped[str] = mapped_column(String(20), nullable=False)
    used_ai: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    adoption_zone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    endorsed_by = mapped_column(FlexJSON, nullable=False, default=list)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class EndorsementRow(Base):
    __tablename__ = "endorsements"
    __table_args__ = (
        Index("ix_endorsements_flow_stage", "flow_id", "stage"),
    )

    endorsement_id: Mapped[UUID] = mapped_column(primary_key=True)
    flow_id: Mapped[UUID] = mapped_column(ForeignKey("flows.flow_id"), nullable=False)
    stage: Mapped[str] = mapped_column(String(20), nullable=False)
    participant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    role_id: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
