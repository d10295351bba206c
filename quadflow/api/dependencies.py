"""FastAPI dependency injection factories.

The role registry is configuration: built once from ``ROSTER_PATH`` (or the
default QUAD roster) and shared by every request. The flow engine is built
per request over repositories bound to that request's AsyncSession.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quadflow.config.settings import get_settings
from quadflow.db.session import get_async_session
from quadflow.registry.roles import RoleRegistry
from quadflow.registry.roster import build_registry, default_registry, load_roster
from quadflow.repositories.flows import (
    EndorsementRepository,
    FlowRepository,
    TransitionRepository,
)
from quadflow.repositories.participants import ParticipantRepository
from quadflow.workflow.engine import FlowEngine

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_role_registry() -> RoleRegistry:
    settings = get_settings()
    if settings.ROSTER_PATH:
        return build_registry(load_roster(settings.ROSTER_PATH))
    return default_registry()


# ---------------------------------------------------------------------------
# Flow engine
# ---------------------------------------------------------------------------


async def get_flow_engine(
    session: AsyncSession = Depends(get_async_session),
    registry: RoleRegistry = Depends(get_role_registry),
) -> FlowEngine:
    return FlowEngine(
        registry=registry,
        flows=FlowRepository(session),
        audit=TransitionRepository(session),
        participants=ParticipantRepository(session),
        endorsements=EndorsementRepository(session),
    )
