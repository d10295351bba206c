"""Flow engine — creates flows and applies role-gated stage changes.

Each request reads the flow, runs the ``TransitionPolicy`` checks, then
enters the flow's critical section where the stage update is version
checked and the audit record appended. Either both persist or neither
does: an audit failure rolls the stage back and surfaces as
``AuditStorageError``. A request that loses a race against another writer
on the same flow fails with ``InvalidTransitionError``.
"""

import logging
from uuid import UUID

from quadflow.errors import (
    AuditStorageError,
    InvalidTransitionError,
    QuadFlowError,
    UnknownFlowError,
    UnknownParticipantError,
    UnknownRoleError,
)
from quadflow.models.common import (
    AdoptionZone,
    FlowStage,
    ParticipationLevel,
    ProficiencyLevel,
)
from quadflow.models.flow import (
    Endorsement,
    Flow,
    FlowState,
    TransitionHistory,
    TransitionRecord,
)
from quadflow.models.registry import Participant
from quadflow.registry.adoption import evaluate
from quadflow.registry.roles import RoleRegistry
from quadflow.workflow.state_machine import ReviewDecision, TransitionPolicy
from quadflow.workflow.stores import (
    AuditLog,
    EndorsementStore,
    FlowStore,
    InMemoryAuditLog,
    InMemoryEndorsementStore,
    InMemoryFlowStore,
    InMemoryParticipantStore,
    ParticipantStore,
)

logger = logging.getLogger(__name__)


def _add_context(exc: QuadFlowError, **context: object) -> None:
    """Fill in request details a lookup error raised without."""
    for key, value in context.items():
        exc.context.setdefault(key, str(value))


class FlowEngine:
    """Coordinates registry, policy and stores for every flow operation."""

    def __init__(
        self,
        *,
        registry: RoleRegistry,
        flows: FlowStore,
        audit: AuditLog,
        participants: ParticipantStore,
        endorsements: EndorsementStore,
    ) -> None:
        self._registry = registry
        self._policy = TransitionPolicy(registry)
        self._flows = flows
        self._audit = audit
        self._participants = participants
        self._endorsements = endorsements

    @classmethod
    def in_memory(cls, registry: RoleRegistry) -> "FlowEngine":
        """Engine over fresh in-memory stores."""
        return cls(
            registry=registry,
            flows=InMemoryFlowStore(),
            audit=InMemoryAuditLog(),
            participants=InMemoryParticipantStore(),
            endorsements=InMemoryEndorsementStore(),
        )

    # ----- Participants (administrative) -----

    async def register_participant(
        self,
        participant_id: str,
        skill: ProficiencyLevel | str,
        trust: ProficiencyLevel | str,
        display_name: str = "",
    ) -> Participant:
        participant = Participant(
            participant_id=participant_id,
            display_name=display_name,
            skill=ProficiencyLevel(skill),
            trust=ProficiencyLevel(trust),
        )
        return await self._participants.add(participant)

    async def update_participant(
        self,
        participant_id: str,
        *,
        skill: ProficiencyLevel | str | None = None,
        trust: ProficiencyLevel | str | None = None,
    ) -> Participant:
        updated = await self._participants.update(
            participant_id,
            skill=ProficiencyLevel(skill) if skill is not None else None,
            trust=ProficiencyLevel(trust) if trust is not None else None,
        )
        logger.info(
            "Participant %s reassessed: skill=%s trust=%s",
            participant_id, updated.skill, updated.trust,
        )
        return updated

    async def get_participant(self, participant_id: str) -> Participant:
        participant = await self._participants.get(participant_id)
        if participant is None:
            raise UnknownParticipantError(participant_id)
        return participant

    async def participant_zone(self, participant_id: str) -> AdoptionZone:
        participant = await self.get_participant(participant_id)
        return evaluate(participant.skill, participant.trust)

    # ----- Flows -----

    async def create_flow(
        self,
        title: str,
        *,
        role_id: str | None = None,
        participant_id: str | None = None,
    ) -> Flow:
        """Create a flow in QUESTION.

        When an actor is named, their role must hold SUPPORT or higher at
        QUESTION and the participant must be registered.
        """
        flow = Flow(title=title, created_by=participant_id)
        if role_id is not None:
            self._policy.check_authority(
                flow, role_id,
                required=ParticipationLevel.SUPPORT, exact=False, action="create a flow",
            )
        if participant_id is not None:
            await self.get_participant(participant_id)

        await self._flows.add(flow)
        await self._audit.open(flow.flow_id)
        logger.info("Flow %s created: %r", flow.flow_id, flow.title)
        return flow

    async def get_flow(self, flow_id: UUID) -> Flow:
        flow = await self._flows.get(flow_id)
        if flow is None:
            raise UnknownFlowError(flow_id)
        return flow

    async def list_flows(self, stage: FlowStage | str | None = None) -> list[Flow]:
        return await self._flows.list_all(FlowStage(stage) if stage is not None else None)

    async def history(self, flow_id: UUID) -> TransitionHistory:
        return await self._audit.history(flow_id)

    async def get_flow_state(self, flow_id: UUID) -> FlowState:
        flow = await self.get_flow(flow_id)
        history = await self._audit.history(flow_id)
        return FlowState(flow=flow, history=list(history))

    # ----- Transitions -----

    async def request_transition(
        self,
        flow_id: UUID,
        role_id: str,
        participant_id: str,
        target_stage: FlowStage | str,
        used_ai: bool = False,
    ) -> TransitionRecord:
        """Advance a flow one stage (or close it from DELIVER)."""
        flow = await self.get_flow(flow_id)
        target = self._policy.check_target(flow, target_stage, role_id=role_id)
        try:
            level = self._policy.check_authority(flow, role_id, target=target)
            participant = await self.get_participant(participant_id)
        except (UnknownRoleError, UnknownParticipantError) as exc:
            _add_context(exc, flow_id=flow.flow_id, target_stage=target, role_id=role_id)
            raise

        review = ReviewDecision(zone=None, gated=False)
        if used_ai:
            zone = evaluate(participant.skill, participant.trust)
            endorsements = await self._endorsements.list_for(flow.flow_id, flow.stage)
            review = self._policy.check_review(
                flow, target,
                participant_id=participant_id,
                role_id=role_id,
                zone=zone,
                endorsements=endorsements,
            )

        record = TransitionRecord(
            flow_id=flow.flow_id,
            from_stage=flow.stage,
            to_stage=target,
            participant_id=participant_id,
            role_id=role_id,
            participation_level=level,
            used_ai=used_ai,
            adoption_zone=review.zone,
            endorsed_by=review.endorsed_by,
        )
        return await self._apply(flow, record)

    async def abandon(
        self,
        flow_id: UUID,
        role_id: str,
        participant_id: str,
        reason: str,
    ) -> TransitionRecord:
        """Retire a non-terminal flow as ABANDONED.

        Only the PRIMARY of the current stage may abandon, and a non-blank
        reason is required; this is the sole exit that does not follow the
        forward order.
        """
        flow = await self.get_flow(flow_id)
        if not reason or not reason.strip():
            raise InvalidTransitionError(
                flow.flow_id, flow.stage, FlowStage.ABANDONED,
                "a reason is required to abandon a flow",
                role_id=role_id,
            )
        try:
            level = self._policy.check_authority(
                flow, role_id, target=FlowStage.ABANDONED, action="abandon",
            )
            await self.get_participant(participant_id)
        except (UnknownRoleError, UnknownParticipantError) as exc:
            _add_context(
                exc, flow_id=flow.flow_id, target_stage=FlowStage.ABANDONED, role_id=role_id,
            )
            raise

        record = TransitionRecord(
            flow_id=flow.flow_id,
            from_stage=flow.stage,
            to_stage=FlowStage.ABANDONED,
            participant_id=participant_id,
            role_id=role_id,
            participation_level=level,
            reason=reason.strip(),
        )
        return await self._apply(flow, record)

    async def endorse(
        self,
        flow_id: UUID,
        role_id: str,
        participant_id: str,
    ) -> Endorsement:
        """Record a REVIEW-level sign-off on the flow's current stage."""
        flow = await self.get_flow(flow_id)
        self._policy.check_authority(
            flow, role_id, required=ParticipationLevel.REVIEW, action="endorse",
        )
        await self.get_participant(participant_id)

        endorsement = Endorsement(
            flow_id=flow.flow_id,
            stage=flow.stage,
            participant_id=participant_id,
            role_id=role_id,
        )
        await self._endorsements.add(endorsement)
        logger.info(
            "Flow %s endorsed at %s by %s (%s)",
            flow.flow_id, flow.stage, participant_id, role_id,
        )
        return endorsement

    async def _apply(self, observed: Flow, record: TransitionRecord) -> TransitionRecord:
        """Version-checked stage update plus audit append, all or nothing."""
        try:
            async with self._flows.guard(observed.flow_id):
                updated = await self._flows.compare_and_set_stage(
                    observed.flow_id,
                    expected_version=observed.version,
                    stage=record.to_stage,
                )
                if updated is None:
                    raise InvalidTransitionError(
                        observed.flow_id, observed.stage, record.to_stage,
                        "stage already changed by a concurrent request",
                        role_id=record.role_id,
                    )
                await self._audit.append(record)
        except AuditStorageError:
            logger.error(
                "Audit append failed for flow %s (%s → %s); stage change rolled back",
                observed.flow_id, record.from_stage, record.to_stage,
            )
            raise

        logger.info(
            "Flow %s moved %s → %s by %s (%s, %s)",
            record.flow_id, record.from_stage, record.to_stage,
            record.participant_id, record.role_id, record.participation_level,
        )
        return record
