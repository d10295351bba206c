"""Shared types, enums, and base models used across QuadFlow domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]


# --- Shared enums ---


class FlowStage(StrEnum):
    """Lifecycle states of a flow.

    The first four are the QUAD stages; CLOSED and ABANDONED are terminal.
    """

    QUESTION = "QUESTION"
    UNDERSTAND = "UNDERSTAND"
    ALLOCATE = "ALLOCATE"
    DELIVER = "DELIVER"
    CLOSED = "CLOSED"
    ABANDONED = "ABANDONED"

    @property
    def rank(self) -> int:
        """Position in the forward order. Both terminal states rank last."""
        return _STAGE_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES

    @classmethod
    def _missing_(cls, value: object) -> "FlowStage | None":
        # Stage names are case-insensitive on input.
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


_STAGE_RANK: dict[FlowStage, int] = {
    FlowStage.QUESTION: 0,
    FlowStage.UNDERSTAND: 1,
    FlowStage.ALLOCATE: 2,
    FlowStage.DELIVER: 3,
    FlowStage.CLOSED: 4,
    FlowStage.ABANDONED: 4,
}

# Stages that carry a participation table, in order
QUAD_STAGES: tuple[FlowStage, ...] = (
    FlowStage.QUESTION,
    FlowStage.UNDERSTAND,
    FlowStage.ALLOCATE,
    FlowStage.DELIVER,
)

TERMINAL_STAGES = frozenset({FlowStage.CLOSED, FlowStage.ABANDONED})


class ParticipationLevel(StrEnum):
    """Authority a role holds at a stage: PRIMARY > SUPPORT > REVIEW > INFORM."""

    PRIMARY = "PRIMARY"
    SUPPORT = "SUPPORT"
    REVIEW = "REVIEW"
    INFORM = "INFORM"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def at_least(self, other: "ParticipationLevel") -> bool:
        return self.rank >= other.rank


_LEVEL_RANK: dict[ParticipationLevel, int] = {
    ParticipationLevel.PRIMARY: 3,
    ParticipationLevel.SUPPORT: 2,
    ParticipationLevel.REVIEW: 1,
    ParticipationLevel.INFORM: 0,
}


class ProficiencyLevel(StrEnum):
    """Ordinal scale shared by participant skill and trust."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AdoptionZone(StrEnum):
    """AI-autonomy category derived from (skill, trust)."""

    RESTRICTED_AI = "RESTRICTED_AI"
    CAUTIOUS_AI = "CAUTIOUS_AI"
    SUPERVISED_AUTONOMY = "SUPERVISED_AUTONOMY"
    ASSISTED_AI = "ASSISTED_AI"
    BALANCED_AI = "BALANCED_AI"
    COLLABORATIVE_AI = "COLLABORATIVE_AI"
    EXPERT_REVIEW = "EXPERT_REVIEW"
    ENHANCED_AI = "ENHANCED_AI"
    DELEGATED_AI = "DELEGATED_AI"


# --- Base model ---


class QuadFlowBase(BaseModel):
    """Base model with common configuration for all QuadFlow Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "ser_json_timedelta": "iso8601",
        "protected_namespaces": (),
    }
