"""Adoption matrix evaluator.

Maps a participant's (skill, trust) pair onto one of nine AI-autonomy
zones using a fixed 3x3 table. The zones in the LOW-trust column gate
AI-assisted transitions behind a REVIEW-level endorsement.

Deterministic, no hidden state.
"""

from types import MappingProxyType
from typing import Mapping

from quadflow.models.common import AdoptionZone, ProficiencyLevel

_L = ProficiencyLevel.LOW
_M = ProficiencyLevel.MEDIUM
_H = ProficiencyLevel.HIGH

# (skill, trust) → zone. Rows are skill, columns are trust.
ADOPTION_MATRIX: Mapping[tuple[ProficiencyLevel, ProficiencyLevel], AdoptionZone] = (
    MappingProxyType({
        (_L, _L): AdoptionZone.RESTRICTED_AI,
        (_L, _M): AdoptionZone.CAUTIOUS_AI,
        (_L, _H): AdoptionZone.SUPERVISED_AUTONOMY,
        (_M, _L): AdoptionZone.ASSISTED_AI,
        (_M, _M): AdoptionZone.BALANCED_AI,
        (_M, _H): AdoptionZone.COLLABORATIVE_AI,
        (_H, _L): AdoptionZone.EXPERT_REVIEW,
        (_H, _M): AdoptionZone.ENHANCED_AI,
        (_H, _H): AdoptionZone.DELEGATED_AI,
    })
)

# LOW-trust column
REVIEW_GATED_ZONES = frozenset({
    AdoptionZone.RESTRICTED_AI,
    AdoptionZone.ASSISTED_AI,
    AdoptionZone.EXPERT_REVIEW,
})


def evaluate(
    skill: ProficiencyLevel | str, trust: ProficiencyLevel | str
) -> AdoptionZone:
    """Return the adoption zone for ``(skill, trust)``.

    Raises:
        ValueError: If either value is not LOW, MEDIUM or HIGH.
    """
    return ADOPTION_MATRIX[(ProficiencyLevel(skill), ProficiencyLevel(trust))]


def requires_review(zone: AdoptionZone) -> bool:
    """True when AI-assisted work in ``zone`` needs a REVIEW sign-off."""
    return zone in REVIEW_GATED_ZONES


def adoption_matrix() -> list[dict[str, str | bool]]:
    """Flatten the grid row by row for external tooling."""
    return [
        {
            "skill": skill.value,
            "trust": trust.value,
            "zone": zone.value,
            "requires_review": requires_review(zone),
        }
        for (skill, trust), zone in ADOPTION_MATRIX.items()
    ]
