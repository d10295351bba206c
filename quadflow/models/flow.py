"""Flow models — Flow, TransitionRecord, Endorsement, FlowState."""

from collections.abc import Iterator, Sequence

from pydantic import Field

from quadflow.models.common import (
    AdoptionZone,
    FlowStage,
    ParticipationLevel,
    QuadFlowBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)

# ---------------------------------------------------------------------------
# Forward-only lifecycle (state machine)
# ---------------------------------------------------------------------------

NEXT_STAGE: dict[FlowStage, FlowStage | None] = {
    FlowStage.QUESTION: FlowStage.UNDERSTAND,
    FlowStage.UNDERSTAND: FlowStage.ALLOCATE,
    FlowStage.ALLOCATE: FlowStage.DELIVER,
    FlowStage.DELIVER: FlowStage.CLOSED,
    FlowStage.CLOSED: None,
    FlowStage.ABANDONED: None,
}


def next_stage(stage: FlowStage) -> FlowStage | None:
    """Immediate successor of ``stage``, or None for terminal states."""
    return NEXT_STAGE[stage]


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


class Flow(QuadFlowBase):
    """A unit of work moving through the QUAD stages.

    ``version`` increases by one per applied transition and backs the
    per-flow compare-and-swap.
    """

    flow_id: UUIDv7 = Field(default_factory=new_uuid7)
    title: str = Field(..., min_length=1, max_length=500)
    stage: FlowStage = Field(default=FlowStage.QUESTION)
    version: int = Field(default=0, ge=0)
    created_by: str | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Audit records (immutable)
# ---------------------------------------------------------------------------


class TransitionRecord(QuadFlowBase, frozen=True):
    """Immutable audit entry for one applied stage change."""

    record_id: UUIDv7 = Field(default_factory=new_uuid7)
    flow_id: UUIDv7
    from_stage: FlowStage
    to_stage: FlowStage
    participant_id: str
    role_id: str
    participation_level: ParticipationLevel
    used_ai: bool = False
    adoption_zone: AdoptionZone | None = None
    endorsed_by: tuple[str, ...] = ()
    reason: str | None = None
    timestamp: UTCTimestamp = Field(default_factory=utc_now)


class Endorsement(QuadFlowBase, frozen=True):
    """REVIEW-level sign-off on a flow's current stage."""

    endorsement_id: UUIDv7 = Field(default_factory=new_uuid7)
    flow_id: UUIDv7
    stage: FlowStage
    participant_id: str
    role_id: str
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class TransitionHistory(Sequence[TransitionRecord]):
    """Finite, restartable view over a flow's audit stream.

    Bound to the records that existed when it was obtained; each iteration
    walks the underlying stream again from the start.
    """

    def __init__(self, records: Sequence[TransitionRecord], length: int | None = None) -> None:
        self._records = records
        self._length = len(records) if length is None else length

    def __iter__(self) -> Iterator[TransitionRecord]:
        for i in range(self._length):
            yield self._records[i]

    def __len__(self) -> int:
        return self._length

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(self._length))]
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError(index)
        return self._records[index]

    def stages(self) -> list[FlowStage]:
        """Stage sequence: the first from-stage followed by every to-stage."""
        if not self._length:
            return []
        return [self[0].from_stage, *(r.to_stage for r in self)]


class FlowState(QuadFlowBase):
    """Current stage plus full history for a flow."""

    flow: Flow
    history: list[TransitionRecord]

    @property
    def current_stage(self) -> FlowStage:
        return self.flow.stage
