"""FastAPI flow endpoints.

POST /v1/flows                          — create a flow in QUESTION
GET  /v1/flows                          — list flows (optional ?stage=)
GET  /v1/flows/{flow_id}                — current stage + history
GET  /v1/flows/{flow_id}/history        — transition history
POST /v1/flows/{flow_id}/transitions    — request a stage change
POST /v1/flows/{flow_id}/endorsements   — REVIEW-level sign-off
POST /v1/flows/{flow_id}/abandon        — retire a flow as ABANDONED

Domain errors are translated to HTTP responses by the handler in main.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from quadflow.api.dependencies import get_flow_engine
from quadflow.models.common import FlowStage
from quadflow.models.flow import Flow, TransitionRecord
from quadflow.workflow.engine import FlowEngine

router = APIRouter(prefix="/v1/flows", tags=["flows"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class CreateFlowRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    role_id: str | None = None
    participant_id: str | None = None


class FlowResponse(BaseModel):
    flow_id: str
    title: str
    current_stage: str
    version: int
    created_by: str | None = None
    created_at: str
    updated_at: str


class FlowListResponse(BaseModel):
    flows: list[FlowResponse]
    total: int


class TransitionRecordResponse(BaseModel):
    record_id: str
    from_stage: str
    to_stage: str
    participant_id: str
    role_id: str
    participation_level: str
    used_ai: bool
    adoption_zone: str | None = None
    endorsed_by: list[str]
    reason: str | None = None
    timestamp: str


class FlowStateResponse(FlowResponse):
    history: list[TransitionRecordResponse]


class HistoryResponse(BaseModel):
    flow_id: str
    records: list[TransitionRecordResponse]
    total: int


class TransitionRequest(BaseModel):
    role_id: str
    participant_id: str
    target_stage: str
    used_ai: bool = False


class TransitionResponse(BaseModel):
    flow_id: str
    current_stage: str
    record: TransitionRecordResponse


class EndorseRequest(BaseModel):
    role_id: str
    participant_id: str


class EndorsementResponse(BaseModel):
    endorsement_id: str
    flow_id: str
    stage: str
    participant_id: str
    role_id: str
    created_at: str


class AbandonRequest(BaseModel):
    role_id: str
    participant_id: str
    reason: str = Field(..., min_length=1, max_length=5000)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _flow_response(flow: Flow) -> FlowResponse:
    return FlowResponse(
        flow_id=str(flow.flow_id),
        title=flow.title,
        current_stage=flow.stage.value,
        version=flow.version,
        created_by=flow.created_by,
        created_at=flow.created_at.isoformat(),
        updated_at=flow.updated_at.isoformat(),
    )


def _record_response(record: TransitionRecord) -> TransitionRecordResponse:
    return TransitionRecordResponse(
        record_id=str(record.record_id),
        from_stage=record.from_stage.value,
        to_stage=record.to_stage.value,
        participant_id=record.participant_id,
        role_id=record.role_id,
        participation_level=record.participation_level.value,
        used_ai=record.used_ai,
        adoption_zone=record.adoption_zone.value if record.adoption_zone else None,
        endorsed_by=list(record.endorsed_by),
        reason=record.reason,
        timestamp=record.timestamp.isoformat(),
    )


def _transition_response(record: TransitionRecord) -> TransitionResponse:
    return TransitionResponse(
        flow_id=str(record.flow_id),
        current_stage=record.to_stage.value,
        record=_record_response(record),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201, response_model=FlowResponse)
async def create_flow(
    body: CreateFlowRequest,
    engine: FlowEngine = Depends(get_flow_engine),
) -> FlowResponse:
    """Create a flow; it starts in QUESTION with an empty history."""
    flow = await engine.create_flow(
        body.title, role_id=body.role_id, participant_id=body.participant_id,
    )
    return _flow_response(flow)


@router.get("", response_model=FlowListResponse)
async def list_flows(
    stage: FlowStage | None = None,
    engine: FlowEngine = Depends(get_flow_engine),
) -> FlowListResponse:
    flows = await engine.list_flows(stage)
    return FlowListResponse(flows=[_flow_response(f) for f in flows], total=len(flows))


@router.get("/{flow_id}", response_model=FlowStateResponse)
async def get_flow_state(
    flow_id: UUID,
    engine: FlowEngine = Depends(get_flow_engine),
) -> FlowStateResponse:
    state = await engine.get_flow_state(flow_id)
    base = _flow_response(state.flow)
    return FlowStateResponse(
        **base.model_dump(),
        history=[_record_response(r) for r in state.history],
    )


@router.get("/{flow_id}/history", response_model=HistoryResponse)
async def get_history(
    flow_id: UUID,
    engine: FlowEngine = Depends(get_flow_engine),
) -> HistoryResponse:
    history = await engine.history(flow_id)
    return HistoryResponse(
        flow_id=str(flow_id),
        records=[_record_response(r) for r in history],
        total=len(history),
    )


@router.post("/{flow_id}/transitions", response_model=TransitionResponse)
async def request_transition(
    flow_id: UUID,
    body: TransitionRequest,
    engine: FlowEngine = Depends(get_flow_engine),
) -> TransitionResponse:
    """Advance the flow one stage, or close it from DELIVER."""
    record = await engine.request_transition(
        flow_id,
        body.role_id,
        body.participant_id,
        body.target_stage,
        used_ai=body.used_ai,
    )
    return _transition_response(record)


@router.post("/{flow_id}/endorsements", status_code=201, response_model=EndorsementResponse)
async def endorse(
    flow_id: UUID,
    body: EndorseRequest,
    engine: FlowEngine = Depends(get_flow_engine),
) -> EndorsementResponse:
    endorsement = await engine.endorse(flow_id, body.role_id, body.participant_id)
    return EndorsementResponse(
        endorsement_id=str(endorsement.endorsement_id),
        flow_id=str(endorsement.flow_id),
        stage=endorsement.stage.value,
        participant_id=endorsement.participant_id,
        role_id=endorsement.role_id,
        created_at=endorsement.created_at.isoformat(),
    )


@router.post("/{flow_id}/abandon", response_model=TransitionResponse)
async def abandon(
    flow_id: UUID,
    body: AbandonRequest,
    engine: FlowEngine = Depends(get_flow_engine),
) -> TransitionResponse:
    record = await engine.abandon(flow_id, body.role_id, body.participant_id, body.reason)
    return _transition_response(record)
