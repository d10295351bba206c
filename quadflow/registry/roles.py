"""Role & Circle registry.

Holds the static role -> circle mapping and the role -> (stage ->
participation level) table. Written during setup, read-only afterwards,
so a fully built registry can be shared across tasks without locking.

Invariant: at most one role is PRIMARY for any QUAD stage. A roster used
by the flow engine must be complete (exactly one PRIMARY per stage).
"""

from types import MappingProxyType
from typing import Mapping

from quadflow.errors import (
    DuplicateCircleError,
    DuplicateRoleError,
    RosterConfigError,
    UnknownCircleError,
    UnknownRoleError,
    UnknownStageError,
)
from quadflow.models.common import QUAD_STAGES, FlowStage, ParticipationLevel
from quadflow.models.registry import Circle, Role


def parse_stage(stage: FlowStage | str) -> FlowStage:
    """Coerce ``stage`` to a QUAD stage that carries a participation table.

    Raises:
        UnknownStageError: For unknown names and for the terminal states.
    """
    try:
        parsed = FlowStage(stage)
    except ValueError:
        raise UnknownStageError(stage) from None
    if parsed not in QUAD_STAGES:
        raise UnknownStageError(stage)
    return parsed


class RoleRegistry:
    """In-memory role and circle register."""

    def __init__(self) -> None:
        self._circles: dict[str, Circle] = {}
        self._roles: dict[str, Role] = {}
        self._primary: dict[FlowStage, str] = {}  # stage → role_id

    # ----- Setup -----

    def register_circle(self, circle: Circle) -> None:
        if circle.circle_id in self._circles:
            raise DuplicateCircleError(circle.circle_id)
        self._circles[circle.circle_id] = circle

    def register_role(self, role: Role, circle: Circle | str | None = None) -> None:
        """Register ``role`` as a member of ``circle`` (defaults to role.circle_id).

        Raises:
            DuplicateRoleError: If the role id already exists.
            UnknownCircleError: If the circle is not registered.
            RosterConfigError: If the role would be a second PRIMARY for a stage.
        """
        if role.role_id in self._roles:
            raise DuplicateRoleError(role.role_id)

        if circle is not None:
            circle_id = circle if isinstance(circle, str) else circle.circle_id
            if circle_id != role.circle_id:
                role = role.model_copy(update={"circle_id": circle_id})
        if role.circle_id not in self._circles:
            raise UnknownCircleError(role.circle_id)

        for stage in QUAD_STAGES:
            if role.level_at(stage) != ParticipationLevel.PRIMARY:
                continue
            holder = self._primary.get(stage)
            if holder is not None:
                msg = (
                    f"Role '{role.role_id}' cannot be PRIMARY at {stage}: "
                    f"'{holder}' already owns that stage."
                )
                raise RosterConfigError(msg, role_id=role.role_id, stage=str(stage))

        self._roles[role.role_id] = role
        for stage in QUAD_STAGES:
            if role.level_at(stage) == ParticipationLevel.PRIMARY:
                self._primary[stage] = role.role_id

    def validate_complete(self) -> None:
        """Check every QUAD stage has exactly one PRIMARY role."""
        missing = [str(s) for s in QUAD_STAGES if s not in self._primary]
        if missing:
            msg = f"No PRIMARY role configured for stage(s): {', '.join(missing)}."
            raise RosterConfigError(msg, stages=missing)

    # ----- Queries -----

    def lookup_participation(
        self, role_id: str, stage: FlowStage | str
    ) -> ParticipationLevel:
        """Return the configured participation level of ``role_id`` at ``stage``.

        Raises:
            UnknownRoleError: If the role is not registered.
            UnknownStageError: If ``stage`` is not a QUAD stage.
        """
        parsed = parse_stage(stage)
        return self.get_role(role_id).level_at(parsed)

    def get_role(self, role_id: str) -> Role:
        try:
            return self._roles[role_id]
        except KeyError:
            raise UnknownRoleError(role_id) from None

    def get_circle(self, circle_id: str) -> Circle:
        try:
            return self._circles[circle_id]
        except KeyError:
            raise UnknownCircleError(circle_id) from None

    def list_roles(self) -> list[Role]:
        return list(self._roles.values())

    def list_circles(self) -> list[Circle]:
        return list(self._circles.values())

    def roles_in_circle(self, circle_id: str) -> list[Role]:
        self.get_circle(circle_id)
        return [r for r in self._roles.values() if r.circle_id == circle_id]

    def participation_table(self, stage: FlowStage | str) -> Mapping[str, ParticipationLevel]:
        """Read-only role_id → level mapping for one stage."""
        parsed = parse_stage(stage)
        return MappingProxyType(
            {role_id: role.level_at(parsed) for role_id, role in self._roles.items()}
        )

    def primary_role(self, stage: FlowStage | str) -> Role | None:
        holder = self._primary.get(parse_stage(stage))
        return self._roles[holder] if holder is not None else None

    def roles_with_level(
        self, stage: FlowStage | str, level: ParticipationLevel
    ) -> list[Role]:
        parsed = parse_stage(stage)
        return [r for r in self._roles.values() if r.level_at(parsed) == level]
