"""Registry models — Circle, Role, Participant."""

from pydantic import Field, field_validator

from quadflow.models.common import (
    QUAD_STAGES,
    FlowStage,
    ParticipationLevel,
    ProficiencyLevel,
    QuadFlowBase,
    UTCTimestamp,
    utc_now,
)


class Circle(QuadFlowBase, frozen=True):
    """Functional grouping of roles (Management, Development, QA, Infrastructure)."""

    circle_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)


class Role(QuadFlowBase, frozen=True):
    """Participant category with a per-stage participation level.

    Roles are configuration: immutable once registered. Stages missing from
    ``participation`` default to INFORM.
    """

    role_id: str = Field(..., min_length=1, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=100)
    circle_id: str = Field(..., min_length=1, max_length=50)
    participation: dict[FlowStage, ParticipationLevel] = Field(default_factory=dict)

    @field_validator("participation")
    @classmethod
    def _quad_stages_only(
        cls, value: dict[FlowStage, ParticipationLevel]
    ) -> dict[FlowStage, ParticipationLevel]:
        extra = [s for s in value if s not in QUAD_STAGES]
        if extra:
            msg = f"Participation can only be set for QUAD stages, got {sorted(extra)}."
            raise ValueError(msg)
        return {
            stage: value.get(stage, ParticipationLevel.INFORM) for stage in QUAD_STAGES
        }

    def level_at(self, stage: FlowStage) -> ParticipationLevel:
        return self.participation.get(stage, ParticipationLevel.INFORM)


class Participant(QuadFlowBase):
    """A person or agent with independently assessed skill and trust.

    Only the administrative update operation changes skill or trust.
    """

    participant_id: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(default="", max_length=255)
    skill: ProficiencyLevel
    trust: ProficiencyLevel
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)
