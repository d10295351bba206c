"""FastAPI registry and adoption endpoints — read-only.

GET /v1/roles                           — roles with circle and participation
GET /v1/circles                         — circles with member roles
GET /v1/stages/{stage}/participation    — participation table for one stage
GET /v1/adoption/zone?skill=&trust=     — evaluate an adoption zone
GET /v1/adoption/matrix                 — full 3x3 adoption matrix

No database access.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from quadflow.api.dependencies import get_role_registry
from quadflow.models.common import ProficiencyLevel
from quadflow.registry.adoption import adoption_matrix, evaluate, requires_review
from quadflow.registry.roles import RoleRegistry, parse_stage

router = APIRouter(prefix="/v1", tags=["registry"])


class RoleResponse(BaseModel):
    role_id: str
    display_name: str
    circle_id: str
    participation: dict[str, str]


class RolesResponse(BaseModel):
    roles: list[RoleResponse]


class CircleResponse(BaseModel):
    circle_id: str
    name: str
    role_ids: list[str]


class CirclesResponse(BaseModel):
    circles: list[CircleResponse]


class ParticipationTableResponse(BaseModel):
    stage: str
    primary_role: str | None
    participation: dict[str, str]


class ZoneResponse(BaseModel):
    skill: str
    trust: str
    zone: str
    requires_review: bool


class MatrixResponse(BaseModel):
    cells: list[ZoneResponse]


@router.get("/roles", response_model=RolesResponse)
async def list_roles(registry: RoleRegistry = Depends(get_role_registry)) -> RolesResponse:
    return RolesResponse(roles=[
        RoleResponse(
            role_id=r.role_id,
            display_name=r.display_name,
            circle_id=r.circle_id,
            participation={s.value: lvl.value for s, lvl in r.participation.items()},
        )
        for r in registry.list_roles()
    ])


@router.get("/circles", response_model=CirclesResponse)
async def list_circles(registry: RoleRegistry = Depends(get_role_registry)) -> CirclesResponse:
    return CirclesResponse(circles=[
        CircleResponse(
            circle_id=c.circle_id,
            name=c.name,
            role_ids=[r.role_id for r in registry.roles_in_circle(c.circle_id)],
        )
        for c in registry.list_circles()
    ])


@router.get("/stages/{stage}/participation", response_model=ParticipationTableResponse)
async def participation_table(
    stage: str,
    registry: RoleRegistry = Depends(get_role_registry),
) -> ParticipationTableResponse:
    parsed = parse_stage(stage)
    primary = registry.primary_role(parsed)
    return ParticipationTableResponse(
        stage=parsed.value,
        primary_role=primary.role_id if primary else None,
        participation={
            role_id: lvl.value for role_id, lvl in registry.participation_table(parsed).items()
        },
    )


@router.get("/adoption/zone", response_model=ZoneResponse)
async def evaluate_adoption_zone(
    skill: ProficiencyLevel,
    trust: ProficiencyLevel,
) -> ZoneResponse:
    """Read-only zone lookup for onboarding dashboards and other tooling."""
    zone = evaluate(skill, trust)
    return ZoneResponse(
        skill=skill.value,
        trust=trust.value,
        zone=zone.value,
        requires_review=requires_review(zone),
    )


@router.get("/adoption/matrix", response_model=MatrixResponse)
async def get_adoption_matrix() -> MatrixResponse:
    return MatrixResponse(cells=[ZoneResponse(**cell) for cell in adoption_matrix()])
