"""Flow state machine rules.

Pure checks applied, in order, before a stage change is accepted:
1. the target is the immediate successor of the current stage
   (DELIVER → CLOSED closes the flow; terminal flows never move);
2. the actor's role is PRIMARY at the current stage;
3. AI-assisted work from a review-gated adoption zone carries a
   REVIEW-level endorsement from someone else.

Deterministic, no storage access.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from quadflow.errors import (
    InsufficientAuthorityError,
    InvalidTransitionError,
    ReviewRequiredError,
)
from quadflow.models.common import AdoptionZone, FlowStage, ParticipationLevel
from quadflow.models.flow import Endorsement, Flow, TransitionRecord, next_stage
from quadflow.registry.adoption import requires_review
from quadflow.registry.roles import RoleRegistry


@dataclass(frozen=True)
class ReviewDecision:
    """Outcome of the AI review gate."""

    zone: AdoptionZone | None
    gated: bool
    endorsed_by: tuple[str, ...] = ()


@dataclass
class HistoryCheck:
    """Result of checking a history for forward-only progress."""

    valid: bool
    violations: list[str] = field(default_factory=list)


class TransitionPolicy:
    """Validation rules for stage changes, bound to one role registry."""

    def __init__(self, registry: RoleRegistry) -> None:
        self._registry = registry

    def check_target(
        self,
        flow: Flow,
        target: FlowStage | str,
        *,
        role_id: str | None = None,
    ) -> FlowStage:
        """Return ``target`` as a stage if it is the flow's immediate successor.

        Stage names are matched case-insensitively.
        """
        try:
            parsed = FlowStage(target)
        except ValueError:
            raise InvalidTransitionError(
                flow.flow_id, flow.stage, str(target), "unknown target stage",
                role_id=role_id,
            ) from None

        if flow.stage.is_terminal:
            raise InvalidTransitionError(
                flow.flow_id, flow.stage, parsed, "flow is in a terminal state",
                role_id=role_id,
            )
        expected = next_stage(flow.stage)
        if parsed != expected:
            raise InvalidTransitionError(
                flow.flow_id, flow.stage, parsed, f"only {expected} may follow {flow.stage}",
                role_id=role_id,
            )
        return parsed

    def check_authority(
        self,
        flow: Flow,
        role_id: str,
        *,
        required: ParticipationLevel = ParticipationLevel.PRIMARY,
        exact: bool = True,
        target: FlowStage | None = None,
        action: str = "advance",
    ) -> ParticipationLevel:
        """Return the role's level at the current stage if it meets ``required``.

        ``exact`` demands the level itself; otherwise anything at or above it passes.
        ``target`` is the stage the caller is trying to reach, for error context.
        """
        if flow.stage.is_terminal:
            raise InvalidTransitionError(
                flow.flow_id, flow.stage, target or flow.stage, "flow is in a terminal state",
                role_id=role_id,
            )
        level = self._registry.lookup_participation(role_id, flow.stage)
        allowed = level == required if exact else level.at_least(required)
        if not allowed:
            raise InsufficientAuthorityError(
                role_id=role_id,
                stage=flow.stage,
                level=level,
                required=required,
                flow_id=flow.flow_id,
                target_stage=target,
                action=action,
            )
        return level

    def check_review(
        self,
        flow: Flow,
        target: FlowStage,
        *,
        participant_id: str,
        role_id: str,
        zone: AdoptionZone | None,
        endorsements: Iterable[Endorsement],
    ) -> ReviewDecision:
        """Require a REVIEW endorsement from another participant for gated zones."""
        if zone is None or not requires_review(zone):
            return ReviewDecision(zone=zone, gated=False)

        endorsers: list[str] = []
        for e in endorsements:
            if e.flow_id != flow.flow_id or e.stage != flow.stage:
                continue
            if e.participant_id == participant_id or e.participant_id in endorsers:
                continue
            if self._registry.lookup_participation(e.role_id, flow.stage) != ParticipationLevel.REVIEW:
                continue
            endorsers.append(e.participant_id)

        if not endorsers:
            raise ReviewRequiredError(
                flow_id=flow.flow_id,
                stage=flow.stage,
                target_stage=target,
                participant_id=participant_id,
                role_id=role_id,
                zone=zone,
            )
        return ReviewDecision(zone=zone, gated=True, endorsed_by=tuple(endorsers))


def check_history(flow_id: UUID, records: Iterable[TransitionRecord]) -> HistoryCheck:
    """Verify records form a strictly advancing chain with no repeats or skips."""
    violations: list[str] = []
    previous: TransitionRecord | None = None
    for record in records:
        if record.flow_id != flow_id:
            violations.append(f"Record {record.record_id} belongs to flow {record.flow_id}.")
        if previous is not None and record.from_stage != previous.to_stage:
            violations.append(
                f"Record {record.record_id} starts at {record.from_stage}, "
                f"expected {previous.to_stage}."
            )
        if record.to_stage.rank <= record.from_stage.rank:
            violations.append(
                f"Record {record.record_id} moves backward: "
                f"{record.from_stage} → {record.to_stage}."
            )
        elif record.to_stage != FlowStage.ABANDONED and record.to_stage != next_stage(record.from_stage):
            violations.append(
                f"Record {record.record_id} skips a stage: "
                f"{record.from_stage} → {record.to_stage}."
            )
        previous = record
    return HistoryCheck(valid=not violations, violations=violations)
