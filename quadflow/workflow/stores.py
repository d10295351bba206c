"""Store ABCs and in-memory implementations for the flow engine.

Four store contracts:
- ``ParticipantStore`` for the participant directory.
- ``FlowStore`` for flows, including the per-flow critical section
  (``guard``) and the version-checked stage update.
- ``AuditLog`` for the append-only transition history.
- ``EndorsementStore`` for REVIEW-level sign-offs.

In-memory implementations serve tests and embedded use. The API wires
the SQLAlchemy-backed implementations from ``quadflow.repositories``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from uuid import UUID

from quadflow.errors import (
    DuplicateParticipantError,
    UnknownFlowError,
    UnknownParticipantError,
)
from quadflow.models.common import FlowStage, ProficiencyLevel, utc_now
from quadflow.models.flow import Endorsement, Flow, TransitionHistory, TransitionRecord
from quadflow.models.registry import Participant

# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------


class ParticipantStore(ABC):
    """Participant directory. Mutated only by administrative calls."""

    @abstractmethod
    async def add(self, participant: Participant) -> Participant: ...

    @abstractmethod
    async def get(self, participant_id: str) -> Participant | None: ...

    @abstractmethod
    async def update(
        self,
        participant_id: str,
        *,
        skill: ProficiencyLevel | None = None,
        trust: ProficiencyLevel | None = None,
    ) -> Participant: ...


class InMemoryParticipantStore(ParticipantStore):
    def __init__(self) -> None:
        self._items: dict[str, Participant] = {}

    async def add(self, participant: Participant) -> Participant:
        if participant.participant_id in self._items:
            raise DuplicateParticipantError(participant.participant_id)
        self._items[participant.participant_id] = participant
        return participant

    async def get(self, participant_id: str) -> Participant | None:
        return self._items.get(participant_id)

    async def update(
        self,
        participant_id: str,
        *,
        skill: ProficiencyLevel | None = None,
        trust: ProficiencyLevel | None = None,
    ) -> Participant:
        current = self._items.get(participant_id)
        if current is None:
            raise UnknownParticipantError(participant_id)
        changes: dict = {"updated_at": utc_now()}
        if skill is not None:
            changes["skill"] = ProficiencyLevel(skill)
        if trust is not None:
            changes["trust"] = ProficiencyLevel(trust)
        updated = current.model_copy(update=changes)
        self._items[participant_id] = updated
        return updated


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


class FlowStore(ABC):
    """Flow storage with a per-flow critical section."""

    @abstractmethod
    async def add(self, flow: Flow) -> Flow: ...

    @abstractmethod
    async def get(self, flow_id: UUID) -> Flow | None: ...

    @abstractmethod
    async def list_all(self, stage: FlowStage | None = None) -> list[Flow]: ...

    @abstractmethod
    def guard(self, flow_id: UUID) -> AbstractAsyncContextManager[None]:
        """Serialize writers of one flow; undo the stage change if the block raises."""

    @abstractmethod
    async def compare_and_set_stage(
        self, flow_id: UUID, *, expected_version: int, stage: FlowStage
    ) -> Flow | None:
        """Move the flow to ``stage`` if its version is still ``expected_version``.

        Returns the updated flow, or None if another writer got there first.
        """


class InMemoryFlowStore(FlowStore):
    def __init__(self) -> None:
        self._flows: dict[UUID, Flow] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}

    async def add(self, flow: Flow) -> Flow:
        self._flows[flow.flow_id] = flow
        self._locks[flow.flow_id] = asyncio.Lock()
        return flow

    async def get(self, flow_id: UUID) -> Flow | None:
        return self._flows.get(flow_id)

    async def list_all(self, stage: FlowStage | None = None) -> list[Flow]:
        flows = list(self._flows.values())
        if stage is not None:
            flows = [f for f in flows if f.stage == stage]
        return flows

    @asynccontextmanager
    async def guard(self, flow_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.get(flow_id)
        if lock is None:
            raise UnknownFlowError(flow_id)
        async with lock:
            snapshot = self._flows[flow_id]
            try:
                yield
            except BaseException:
                self._flows[flow_id] = snapshot
                raise

    async def compare_and_set_stage(
        self, flow_id: UUID, *, expected_version: int, stage: FlowStage
    ) -> Flow | None:
        current = self._flows.get(flow_id)
        if current is None:
            raise UnknownFlowError(flow_id)
        if current.version != expected_version:
            return None
        updated = current.model_copy(
            update={"stage": stage, "version": current.version + 1, "updated_at": utc_now()}
        )
        self._flows[flow_id] = updated
        return updated


# ---------------------------------------------------------------------------
# Audit log (append-only)
# ---------------------------------------------------------------------------


class AuditLog(ABC):
    """Append-only store of transition records keyed by flow id."""

    @abstractmethod
    async def open(self, flow_id: UUID) -> None:
        """Start an empty stream for a newly created flow."""

    @abstractmethod
    async def append(self, record: TransitionRecord) -> None:
        """Persist ``record``. Raises AuditStorageError if storage is unavailable."""

    @abstractmethod
    async def history(self, flow_id: UUID) -> TransitionHistory:
        """Records for ``flow_id`` in timestamp order.

        Raises UnknownFlowError if no stream was ever opened for the flow.
        """


class InMemoryAuditLog(AuditLog):
    def __init__(self) -> None:
        self._streams: dict[UUID, list[TransitionRecord]] = {}

    async def open(self, flow_id: UUID) -> None:
        self._streams.setdefault(flow_id, [])

    async def append(self, record: TransitionRecord) -> None:
        self._streams.setdefault(record.flow_id, []).append(record)

    async def history(self, flow_id: UUID) -> TransitionHistory:
        stream = self._streams.get(flow_id)
        if stream is None:
            raise UnknownFlowError(flow_id)
        return TransitionHistory(stream, length=len(stream))


# ---------------------------------------------------------------------------
# Endorsements
# ---------------------------------------------------------------------------


class EndorsementStore(ABC):
    @abstractmethod
    async def add(self, endorsement: Endorsement) -> Endorsement: ...

    @abstractmethod
    async def list_for(self, flow_id: UUID, stage: FlowStage) -> list[Endorsement]: ...


class InMemoryEndorsementStore(EndorsementStore):
    def __init__(self) -> None:
        self._items: list[Endorsement] = []

    async def add(self, endorsement: Endorsement) -> Endorsement:
        self._items.append(endorsement)
        return endorsement

    async def list_for(self, flow_id: UUID, stage: FlowStage) -> list[Endorsement]:
        return [e for e in self._items if e.flow_id == flow_id and e.stage == stage]
