"""FastAPI participant endpoints — administrative, not flow-gated.

POST  /v1/participants        — register a participant
PATCH /v1/participants/{id}   — reassess skill and/or trust
GET   /v1/participants/{id}   — participant with current adoption zone
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from quadflow.api.dependencies import get_flow_engine
from quadflow.models.common import ProficiencyLevel
from quadflow.models.registry import Participant
from quadflow.registry.adoption import evaluate, requires_review
from quadflow.workflow.engine import FlowEngine

router = APIRouter(prefix="/v1/participants", tags=["participants"])


class RegisterParticipantRequest(BaseModel):
    participant_id: str = Field(..., min_length=1, max_length=100)
    display_name: str = ""
    skill: ProficiencyLevel
    trust: ProficiencyLevel


class UpdateParticipantRequest(BaseModel):
    skill: ProficiencyLevel | None = None
    trust: ProficiencyLevel | None = None


class ParticipantResponse(BaseModel):
    participant_id: str
    display_name: str
    skill: str
    trust: str
    adoption_zone: str
    requires_review: bool
    updated_at: str


def _participant_response(participant: Participant) -> ParticipantResponse:
    zone = evaluate(participant.skill, participant.trust)
    return ParticipantResponse(
        participant_id=participant.participant_id,
        display_name=participant.display_name,
        skill=participant.skill.value,
        trust=participant.trust.value,
        adoption_zone=zone.value,
        requires_review=requires_review(zone),
        updated_at=participant.updated_at.isoformat(),
    )


@router.post("", status_code=201, response_model=ParticipantResponse)
async def register_participant(
    body: RegisterParticipantRequest,
    engine: FlowEngine = Depends(get_flow_engine),
) -> ParticipantResponse:
    participant = await engine.register_participant(
        body.participant_id, body.skill, body.trust, display_name=body.display_name,
    )
    return _participant_response(participant)


@router.patch("/{participant_id}", response_model=ParticipantResponse)
async def update_participant(
    participant_id: str,
    body: UpdateParticipantRequest,
    engine: FlowEngine = Depends(get_flow_engine),
) -> ParticipantResponse:
    participant = await engine.update_participant(
        participant_id, skill=body.skill, trust=body.trust,
    )
    return _participant_response(participant)


@router.get("/{participant_id}", response_model=ParticipantResponse)
async def get_participant(
    participant_id: str,
    engine: FlowEngine = Depends(get_flow_engine),
) -> ParticipantResponse:
    participant = await engine.get_participant(participant_id)
    return _participant_response(participant)
