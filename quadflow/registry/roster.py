"""QUAD roster — default circles, roles and participation table.

A roster is plain configuration: either the built-in default below or a
JSON file named by ``Settings.ROSTER_PATH`` with the same shape::

    {"circles": [{"circle_id": "QA", "name": "Quality Assurance"}],
     "roles": [{"role_id": "QA_ENGINEER", "display_name": "QA Engineer",
                "circle_id": "QA", "participation": {"QUESTION": "REVIEW"}}]}
"""

from pathlib import Path

from pydantic import ValidationError

from quadflow.errors import RosterConfigError
from quadflow.models.common import FlowStage, ParticipationLevel, QuadFlowBase
from quadflow.models.registry import Circle, Role
from quadflow.registry.roles import RoleRegistry

_Q = FlowStage.QUESTION
_U = FlowStage.UNDERSTAND
_A = FlowStage.ALLOCATE
_D = FlowStage.DELIVER

_P = ParticipationLevel.PRIMARY
_S = ParticipationLevel.SUPPORT
_R = ParticipationLevel.REVIEW
_I = ParticipationLevel.INFORM


class RosterConfig(QuadFlowBase):
    """Serialisable roster definition."""

    circles: list[Circle]
    roles: list[Role]


DEFAULT_ROSTER = RosterConfig(
    circles=[
        Circle(circle_id="MANAGEMENT", name="Management"),
        Circle(circle_id="DEVELOPMENT", name="Development"),
        Circle(circle_id="QA", name="Quality Assurance"),
        Circle(circle_id="INFRASTRUCTURE", name="Infrastructure"),
    ],
    roles=[
        Role(
            role_id="MANAGER", display_name="Manager", circle_id="MANAGEMENT",
            participation={_Q: _P, _U: _R, _A: _P, _D: _I},
        ),
        Role(
            role_id="TECH_LEAD", display_name="Tech Lead", circle_id="DEVELOPMENT",
            participation={_Q: _S, _U: _P, _A: _S, _D: _R},
        ),
        Role(
            role_id="DEVELOPER", display_name="Developer", circle_id="DEVELOPMENT",
            participation={_Q: _S, _U: _S, _A: _I, _D: _P},
        ),
        Role(
            role_id="QA_ENGINEER", display_name="QA Engineer", circle_id="QA",
            participation={_Q: _R, _U: _S, _A: _R, _D: _R},
        ),
        Role(
            role_id="DEVOPS_ENGINEER", display_name="DevOps Engineer",
            circle_id="INFRASTRUCTURE",
            participation={_Q: _I, _U: _I, _A: _S, _D: _S},
        ),
    ],
)


def build_registry(config: RosterConfig) -> RoleRegistry:
    """Register every circle and role, then require one PRIMARY per stage."""
    registry = RoleRegistry()
    for circle in config.circles:
        registry.register_circle(circle)
    for role in config.roles:
        registry.register_role(role)
    registry.validate_complete()
    return registry


def load_roster(path: str | Path) -> RosterConfig:
    """Read and validate a JSON roster file.

    Raises:
        RosterConfigError: If the file is missing or does not validate.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read roster file {path}: {exc}"
        raise RosterConfigError(msg, path=str(path)) from exc
    try:
        return RosterConfig.model_validate_json(raw)
    except ValidationError as exc:
        msg = f"Invalid roster file {path}: {exc.error_count()} validation error(s)."
        raise RosterConfigError(msg, path=str(path)) from exc


def default_registry() -> RoleRegistry:
    return build_registry(DEFAULT_ROSTER)
