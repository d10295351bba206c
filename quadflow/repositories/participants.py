"""Participant repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quadflow.db.tables import ParticipantRow
from quadflow.errors import DuplicateParticipantError, UnknownParticipantError
from quadflow.models.common import ProficiencyLevel, utc_now
from quadflow.models.registry import Participant
from quadflow.workflow.stores import ParticipantStore


def _to_model(row: ParticipantRow) -> Participant:
    return Participant(
        participant_id=row.participant_id,
        display_name=row.display_name,
        skill=ProficiencyLevel(row.skill),
        trust=ProficiencyLevel(row.trust),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ParticipantRepository(ParticipantStore):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, participant: Participant) -> Participant:
        if await self._session.get(ParticipantRow, participant.participant_id) is not None:
            raise DuplicateParticipantError(participant.participant_id)
        row = ParticipantRow(
            participant_id=participant.participant_id,
            display_name=participant.display_name,
            skill=participant.skill.value,
            trust=participant.trust.value,
            created_at=participant.created_at,
            updated_at=participant.updated_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _to_model(row)

    async def get(self, participant_id: str) -> Participant | None:
        row = await self._session.get(ParticipantRow, participant_id)
        return _to_model(row) if row is not None else None

    async def update(
        self,
        participant_id: str,
        *,
        skill: ProficiencyLevel | None = None,
        trust: ProficiencyLevel | None = None,
    ) -> Participant:
        row = await self._session.get(ParticipantRow, participant_id)
        if row is None:
            raise UnknownParticipantError(participant_id)
        if skill is not None:
            row.skill = ProficiencyLevel(skill).value
        if trust is not None:
            row.trust = ProficiencyLevel(trust).value
        row.updated_at = utc_now()
        await self._session.flush()
        return _to_model(row)

    async def list_all(self) -> list[Participant]:
        result = await self._session.execute(
            select(ParticipantRow).order_by(ParticipantRow.participant_id)
        )
        return [_to_model(r) for r in result.scalars().all()]
