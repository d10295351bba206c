"""QuadFlow exception hierarchy.

Every error raised by the registry, the adoption evaluator, the flow engine,
and the stores derives from ``QuadFlowError`` and carries a ``context`` dict
(flow id, stage, target stage, role, participant) so a caller can correct
the request and retry. The API registers one handler per family.

``AuditStorageError`` is the only fatal kind: it is raised after the
in-progress stage change has been rolled back.

Usage:
    from quadflow.errors import UnknownFlowError

    raise UnknownFlowError(flow_id)
"""

from typing import Any


class QuadFlowError(Exception):
    """Base class for all QuadFlow domain errors."""

    def __init__(self, message: str, **context: Any) -> None:
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__


# ---------------------------------------------------------------------------
# Lookup failures
# ---------------------------------------------------------------------------


class UnknownRoleError(QuadFlowError):
    def __init__(self, role_id: str) -> None:
        super().__init__(f"Role '{role_id}' is not registered.", role_id=role_id)


class UnknownCircleError(QuadFlowError):
    def __init__(self, circle_id: str) -> None:
        super().__init__(f"Circle '{circle_id}' is not registered.", circle_id=circle_id)


class UnknownStageError(QuadFlowError):
    def __init__(self, stage: Any) -> None:
        super().__init__(
            f"'{stage}' is not a QUAD stage with a participation table.",
            stage=str(stage),
        )


class UnknownFlowError(QuadFlowError):
    def __init__(self, flow_id: Any) -> None:
        super().__init__(f"Flow {flow_id} does not exist.", flow_id=str(flow_id))


class UnknownParticipantError(QuadFlowError):
    def __init__(self, participant_id: str) -> None:
        super().__init__(
            f"Participant '{participant_id}' is not registered.",
            participant_id=participant_id,
        )


# ---------------------------------------------------------------------------
# Duplicates and configuration
# ---------------------------------------------------------------------------


class DuplicateRoleError(QuadFlowError):
    def __init__(self, role_id: str) -> None:
        super().__init__(f"Role '{role_id}' is already registered.", role_id=role_id)


class DuplicateCircleError(QuadFlowError):
    def __init__(self, circle_id: str) -> None:
        super().__init__(
            f"Circle '{circle_id}' is already registered.", circle_id=circle_id
        )


class DuplicateParticipantError(QuadFlowError):
    def __init__(self, participant_id: str) -> None:
        super().__init__(
            f"Participant '{participant_id}' is already registered.",
            participant_id=participant_id,
        )


class RosterConfigError(QuadFlowError):
    """Raised when the role roster violates the single-PRIMARY rule or is malformed."""


# ---------------------------------------------------------------------------
# Transition failures
# ---------------------------------------------------------------------------


class InvalidTransitionError(QuadFlowError):
    """Target is not the immediate successor, the flow is terminal, or a
    concurrent request already moved the flow."""

    def __init__(
        self,
        flow_id: Any,
        current_stage: str,
        target_stage: str,
        reason: str | None = None,
        *,
        role_id: str | None = None,
    ) -> None:
        msg = f"Cannot move flow {flow_id} from {current_stage} to {target_stage}"
        if reason:
            msg += f": {reason}"
        super().__init__(
            msg,
            flow_id=str(flow_id),
            current_stage=str(current_stage),
            target_stage=str(target_stage),
            role_id=role_id,
        )
        self.reason = reason


class InsufficientAuthorityError(QuadFlowError):
    def __init__(
        self,
        *,
        role_id: str,
        stage: str,
        level: str,
        required: str,
        flow_id: Any = None,
        target_stage: str | None = None,
        action: str = "advance",
    ) -> None:
        super().__init__(
            f"Role '{role_id}' holds {level} at {stage}; {required} is required to {action}.",
            flow_id=str(flow_id) if flow_id is not None else None,
            role_id=role_id,
            stage=str(stage),
            target_stage=str(target_stage) if target_stage is not None else None,
            level=str(level),
            required=str(required),
        )


class ReviewRequiredError(QuadFlowError):
    def __init__(
        self,
        *,
        flow_id: Any,
        stage: str,
        target_stage: str,
        participant_id: str,
        role_id: str,
        zone: str,
    ) -> None:
        super().__init__(
            f"AI-assisted transition of flow {flow_id} by '{participant_id}' "
            f"({zone}) needs a REVIEW-level endorsement at {stage} from another participant.",
            flow_id=str(flow_id),
            stage=str(stage),
            target_stage=str(target_stage),
            participant_id=participant_id,
            role_id=role_id,
            zone=str(zone),
        )


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------


class AuditStorageError(QuadFlowError):
    """The audit log could not persist a record. The transition was rolled back."""
