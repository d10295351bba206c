"""Seed script — load demo participants and a demo flow into QuadFlow.

Creates:
1. One participant per default role, spread across the adoption matrix
2. A demo flow in QUESTION, created by the manager

Idempotent: safe to run multiple times; it skips participants that already
exist and the flow if one with the demo title is present.

Usage:
    python -m scripts          # against DATABASE_URL from .env
"""

import asyncio
import sys

from sqlalchemy.ext.asyncio import AsyncSession

from quadflow.models.common import ProficiencyLevel
from quadflow.registry.roster import default_registry
from quadflow.repositories.flows import (
    EndorsementRepository,
    FlowRepository,
    TransitionRepository,
)
from quadflow.repositories.participants import ParticipantRepository
from quadflow.workflow.engine import FlowEngine

DEMO_FLOW_TITLE = "Demo: onboarding checklist service"

# participant_id → (display name, skill, trust)
DEMO_PARTICIPANTS: dict[str, tuple[str, ProficiencyLevel, ProficiencyLevel]] = {
    "mgr-amira": ("Amira", ProficiencyLevel.HIGH, ProficiencyLevel.HIGH),
    "lead-tomas": ("Tomas", ProficiencyLevel.HIGH, ProficiencyLevel.MEDIUM),
    "dev-kai": ("Kai", ProficiencyLevel.LOW, ProficiencyLevel.LOW),
    "qa-noor": ("Noor", ProficiencyLevel.MEDIUM, ProficiencyLevel.HIGH),
    "ops-lena": ("Lena", ProficiencyLevel.MEDIUM, ProficiencyLevel.LOW),
}


def _engine(session: AsyncSession) -> FlowEngine:
    return FlowEngine(
        registry=default_registry(),
        flows=FlowRepository(session),
        audit=TransitionRepository(session),
        participants=ParticipantRepository(session),
        endorsements=EndorsementRepository(session),
    )


async def seed(session: AsyncSession) -> dict[str, int]:
    """Insert demo data through the engine. Returns counts of rows created."""
    engine = _engine(session)
    created = {"participants": 0, "flows": 0}

    for pid, (name, skill, trust) in DEMO_PARTICIPANTS.items():
        if await ParticipantRepository(session).get(pid) is not None:
            continue
        await engine.register_participant(pid, skill, trust, display_name=name)
        created["participants"] += 1

    existing = await engine.list_flows()
    if not any(f.title == DEMO_FLOW_TITLE for f in existing):
        await engine.create_flow(
            DEMO_FLOW_TITLE, role_id="MANAGER", participant_id="mgr-amira",
        )
        created["flows"] += 1

    return created


async def _run_seed() -> None:
    from quadflow.db.session import async_session_factory

    async with async_session_factory() as session:
        try:
            created = await seed(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    print(
        f"Seeded {created['participants']} participant(s), {created['flows']} flow(s).",
        file=sys.stdout,
    )


if __name__ == "__main__":
    asyncio.run(_run_seed())
