"""Tests for FlowRepository, TransitionRepository and EndorsementRepository."""

import pytest
from uuid_extensions import uuid7

from quadflow.errors import AuditStorageError, InvalidTransitionError, UnknownFlowError
from quadflow.models.common import AdoptionZone, FlowStage, ParticipationLevel
from quadflow.models.flow import Endorsement, Flow, TransitionRecord
from quadflow.repositories.flows import (
    EndorsementRepository,
    FlowRepository,
    TransitionRepository,
)
from quadflow.repositories.participants import ParticipantRepository
from quadflow.workflow.engine import FlowEngine


class _FlushThenFailTransitionRepository(TransitionRepository):
    """Writes the row, then fails as if the commit of the audit store broke."""

    async def append(self, record: TransitionRecord) -> None:
        await super().append(record)
        raise AuditStorageError("audit store unavailable", flow_id=str(record.flow_id))


class _InterleavingParticipantRepository(ParticipantRepository):
    """Moves a flow on behalf of another writer during the participant lookup."""

    def __init__(self, session, flows: FlowRepository) -> None:
        super().__init__(session)
        self._flows = flows
        self.race_on_next_get = None

    async def get(self, participant_id: str):
        flow_id, self.race_on_next_get = self.race_on_next_get, None
        if flow_id is not None:
            flow = await self._flows.get(flow_id)
            await self._flows.compare_and_set_stage(
                flow_id, expected_version=flow.version, stage=FlowStage.UNDERSTAND,
            )
        return await super().get(participant_id)


@pytest.fixture
def flows(db_session):
    return FlowRepository(db_session)


@pytest.fixture
def audit(db_session):
    return TransitionRepository(db_session)


@pytest.fixture
def endorsements(db_session):
    return EndorsementRepository(db_session)


@pytest.fixture
def sql_engine(db_session, registry) -> FlowEngine:
    return FlowEngine(
        registry=registry,
        flows=FlowRepository(db_session),
        audit=TransitionRepository(db_session),
        participants=ParticipantRepository(db_session),
        endorsements=EndorsementRepository(db_session),
    )


class TestFlowRepository:

    @pytest.mark.anyio
    async def test_add_and_get(self, flows: FlowRepository) -> None:
        flow = await flows.add(Flow(title="Invoice export"))
        fetched = await flows.get(flow.flow_id)
        assert fetched is not None
        assert fetched.title == "Invoice export"
        assert fetched.stage == FlowStage.QUESTION
        assert fetched.version == 0

    @pytest.mark.anyio
    async def test_get_missing(self, flows: FlowRepository) -> None:
        assert await flows.get(uuid7()) is None

    @pytest.mark.anyio
    async def test_compare_and_set_stage(self, flows: FlowRepository) -> None:
        flow = await flows.add(Flow(title="CAS"))
        updated = await flows.compare_and_set_stage(
            flow.flow_id, expected_version=0, stage=FlowStage.UNDERSTAND,
        )
        assert updated is not None
        assert updated.stage == FlowStage.UNDERSTAND
        assert updated.version == 1

    @pytest.mark.anyio
    async def test_stale_version_loses(self, flows: FlowRepository) -> None:
        flow = await flows.add(Flow(title="CAS"))
        await flows.compare_and_set_stage(flow.flow_id, expected_version=0, stage=FlowStage.UNDERSTAND)
        stale = await flows.compare_and_set_stage(
            flow.flow_id, expected_version=0, stage=FlowStage.UNDERSTAND,
        )
        assert stale is None
        assert (await flows.get(flow.flow_id)).version == 1

    @pytest.mark.anyio
    async def test_list_by_stage(self, flows: FlowRepository) -> None:
        a = await flows.add(Flow(title="A"))
        await flows.add(Flow(title="B"))
        await flows.compare_and_set_stage(a.flow_id, expected_version=0, stage=FlowStage.UNDERSTAND)
        assert [f.title for f in await flows.list_all(FlowStage.UNDERSTAND)] == ["A"]
        assert len(await flows.list_all()) == 2


class TestTransitionRepository:

    @pytest.mark.anyio
    async def test_history_unknown_flow(self, audit: TransitionRepository) -> None:
        with pytest.raises(UnknownFlowError):
            await audit.history(uuid7())

    @pytest.mark.anyio
    async def test_history_empty_for_new_flow(
        self, flows: FlowRepository, audit: TransitionRepository,
    ) -> None:
        flow = await flows.add(Flow(title="Fresh"))
        await audit.open(flow.flow_id)
        assert len(await audit.history(flow.flow_id)) == 0

    @pytest.mark.anyio
    async def test_append_and_read_back(
        self, flows: FlowRepository, audit: TransitionRepository,
    ) -> None:
        flow = await flows.add(Flow(title="Audited"))
        record = TransitionRecord(
            flow_id=flow.flow_id,
            from_stage=FlowStage.QUESTION,
            to_stage=FlowStage.UNDERSTAND,
            participant_id="novice",
            role_id="MANAGER",
            participation_level=ParticipationLevel.PRIMARY,
            used_ai=True,
            adoption_zone=AdoptionZone.RESTRICTED_AI,
            endorsed_by=("noor",),
        )
        await audit.append(record)
        history = await audit.history(flow.flow_id)
        assert len(history) == 1
        stored = history[0]
        assert stored.record_id == record.record_id
        assert stored.adoption_zone == AdoptionZone.RESTRICTED_AI
        assert stored.endorsed_by == ("noor",)
        assert stored.used_ai is True


class TestEndorsementRepository:

    @pytest.mark.anyio
    async def test_list_for_stage(
        self, flows: FlowRepository, endorsements: EndorsementRepository,
    ) -> None:
        flow = await flows.add(Flow(title="Endorsed"))
        await endorsements.add(Endorsement(
            flow_id=flow.flow_id, stage=FlowStage.QUESTION,
            participant_id="noor", role_id="QA_ENGINEER",
        ))
        assert len(await endorsements.list_for(flow.flow_id, FlowStage.QUESTION)) == 1
        assert await endorsements.list_for(flow.flow_id, FlowStage.UNDERSTAND) == []


class TestEngineOverRepositories:

    @pytest.mark.anyio
    async def test_transition_persists_stage_and_record(self, sql_engine: FlowEngine) -> None:
        await sql_engine.register_participant("amira", "HIGH", "HIGH")
        flow = await sql_engine.create_flow("DB walkthrough")
        await sql_engine.request_transition(flow.flow_id, "MANAGER", "amira", "UNDERSTAND")

        state = await sql_engine.get_flow_state(flow.flow_id)
        assert state.current_stage == FlowStage.UNDERSTAND
        assert state.flow.version == 1
        assert [r.to_stage for r in state.history] == [FlowStage.UNDERSTAND]

    @pytest.mark.anyio
    async def test_review_gate_with_persisted_endorsement(self, sql_engine: FlowEngine) -> None:
        await sql_engine.register_participant("novice", "LOW", "LOW")
        await sql_engine.register_participant("noor", "MEDIUM", "HIGH")
        flow = await sql_engine.create_flow("AI draft")
        await sql_engine.endorse(flow.flow_id, "QA_ENGINEER", "noor")
        record = await sql_engine.request_transition(
            flow.flow_id, "MANAGER", "novice", "UNDERSTAND", used_ai=True,
        )
        assert record.endorsed_by == ("noor",)

    @pytest.mark.anyio
    async def test_audit_failure_rolls_back_savepoint(self, db_session, registry) -> None:
        engine = FlowEngine(
            registry=registry,
            flows=FlowRepository(db_session),
            audit=_FlushThenFailTransitionRepository(db_session),
            participants=ParticipantRepository(db_session),
            endorsements=EndorsementRepository(db_session),
        )
        await engine.register_participant("amira", "HIGH", "HIGH")
        flow = await engine.create_flow("Fragile")

        with pytest.raises(AuditStorageError):
            await engine.request_transition(flow.flow_id, "MANAGER", "amira", "UNDERSTAND")

        after = await engine.get_flow(flow.flow_id)
        assert after.stage == FlowStage.QUESTION
        assert after.version == 0
        assert len(await engine.history(flow.flow_id)) == 0

    @pytest.mark.anyio
    async def test_engine_loses_to_concurrent_writer(self, db_session, registry) -> None:
        flows = FlowRepository(db_session)
        participants = _InterleavingParticipantRepository(db_session, flows)
        engine = FlowEngine(
            registry=registry,
            flows=flows,
            audit=TransitionRepository(db_session),
            participants=participants,
            endorsements=EndorsementRepository(db_session),
        )
        await engine.register_participant("amira", "HIGH", "HIGH")
        flow = await engine.create_flow("Contended")

        participants.race_on_next_get = flow.flow_id
        with pytest.raises(InvalidTransitionError) as exc_info:
            await engine.request_transition(flow.flow_id, "MANAGER", "amira", "UNDERSTAND")
        assert exc_info.value.reason == "stage already changed by a concurrent request"
        assert exc_info.value.context["role_id"] == "MANAGER"

        # Only the competing write landed; this request left no audit record.
        after = await engine.get_flow(flow.flow_id)
        assert after.stage == FlowStage.UNDERSTAND
        assert after.version == 1
        assert len(await engine.history(flow.flow_id)) == 0
