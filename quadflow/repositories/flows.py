"""Flow, transition (audit) and endorsement repositories.

Stage changes use an optimistic version predicate inside a SAVEPOINT, so
two writers racing on one flow cannot both win even across processes,
and a failed audit insert discards the stage update with it.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quadflow.db.tables import EndorsementRow, FlowRow, FlowTransitionRow
from quadflow.errors import AuditStorageError, UnknownFlowError
from quadflow.models.common import (
    AdoptionZone,
    FlowStage,
    ParticipationLevel,
    utc_now,
)
from quadflow.models.flow import Endorsement, Flow, TransitionHistory, TransitionRecord
from quadflow.workflow.stores import AuditLog, EndorsementStore, FlowStore


def _flow_from_row(row: FlowRow) -> Flow:
    return Flow(
        flow_id=row.flow_id,
        title=row.title,
        stage=FlowStage(row.stage),
        version=row.version,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _record_from_row(row: FlowTransitionRow) -> TransitionRecord:
    return TransitionRecord(
        record_id=row.record_id,
        flow_id=row.flow_id,
        from_stage=FlowStage(row.from_stage),
        to_stage=FlowStage(row.to_stage),
        participant_id=row.participant_id,
        role_id=row.role_id,
        participation_level=ParticipationLevel(row.participation_level),
        used_ai=row.used_ai,
        adoption_zone=AdoptionZone(row.adoption_zone) if row.adoption_zone else None,
        endorsed_by=tuple(row.endorsed_by or ()),
        reason=row.reason,
        timestamp=row.timestamp,
    )


def _endorsement_from_row(row: EndorsementRow) -> Endorsement:
    return Endorsement(
        endorsement_id=row.endorsement_id,
        flow_id=row.flow_id,
        stage=FlowStage(row.stage),
        participant_id=row.participant_id,
        role_id=row.role_id,
        created_at=row.created_at,
    )


class FlowRepository(FlowStore):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, flow: Flow) -> Flow:
        row = FlowRow(
            flow_id=flow.flow_id,
            title=flow.title,
            stage=flow.stage.value,
            version=flow.version,
            created_by=flow.created_by,
            created_at=flow.created_at,
            updated_at=flow.updated_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _flow_from_row(row)

    async def get(self, flow_id: UUID) -> Flow | None:
        row = await self._session.get(FlowRow, flow_id, populate_existing=True)
        return _flow_from_row(row) if row is not None else None

    async def list_all(self, stage: FlowStage | None = None) -> list[Flow]:
        stmt = select(FlowRow).order_by(FlowRow.created_at, FlowRow.flow_id)
        if stage is not None:
            stmt = stmt.where(FlowRow.stage == stage.value)
        result = await self._session.execute(stmt)
        return [_flow_from_row(r) for r in result.scalars().all()]

    @asynccontextmanager
    async def guard(self, flow_id: UUID) -> AsyncIterator[None]:
        async with self._session.begin_nested():
            yield

    async def compare_and_set_stage(
        self, flow_id: UUID, *, expected_version: int, stage: FlowStage
    ) -> Flow | None:
        result = await self._session.execute(
            update(FlowRow)
            .where(FlowRow.flow_id == flow_id, FlowRow.version == expected_version)
            .values(stage=stage.value, version=FlowRow.version + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return await self.get(flow_id)


class TransitionRepository(AuditLog):
    """SQL-backed audit log. Rows are inserted, never updated."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def open(self, flow_id: UUID) -> None:
        # The flows row is the stream; nothing to create.
        return None

    async def append(self, record: TransitionRecord) -> None:
        row = FlowTransitionRow(
            record_id=record.record_id,
            flow_id=record.flow_id,
            from_stage=record.from_stage.value,
            to_stage=record.to_stage.value,
            participant_id=record.participant_id,
            role_id=record.role_id,
            participation_level=record.participation_level.value,
            used_ai=record.used_ai,
            adoption_zone=record.adoption_zone.value if record.adoption_zone else None,
            endorsed_by=list(record.endorsed_by),
            reason=record.reason,
            timestamp=record.timestamp,
        )
        try:
            self._session.add(row)
            await self._session.flush()
        except SQLAlchemyError as exc:
            msg = f"Could not persist transition record for flow {record.flow_id}."
            raise AuditStorageError(msg, flow_id=str(record.flow_id)) from exc

    async def history(self, flow_id: UUID) -> TransitionHistory:
        if await self._session.get(FlowRow, flow_id) is None:
            raise UnknownFlowError(flow_id)
        result = await self._session.execute(
            select(FlowTransitionRow)
            .where(FlowTransitionRow.flow_id == flow_id)
            .order_by(FlowTransitionRow.timestamp, FlowTransitionRow.record_id)
        )
        return TransitionHistory([_record_from_row(r) for r in result.scalars().all()])


class EndorsementRepository(EndorsementStore):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, endorsement: Endorsement) -> Endorsement:
        row = EndorsementRow(
            endorsement_id=endorsement.endorsement_id,
            flow_id=endorsement.flow_id,
            stage=endorsement.stage.value,
            participant_id=endorsement.participant_id,
            role_id=endorsement.role_id,
            created_at=endorsement.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return endorsement

    async def list_for(self, flow_id: UUID, stage: FlowStage) -> list[Endorsement]:
        result = await self._session.execute(
            select(EndorsementRow).where(
                EndorsementRow.flow_id == flow_id,
                EndorsementRow.stage == stage.value,
            )
        )
        return [_endorsement_from_row(r) for r in result.scalars().all()]
