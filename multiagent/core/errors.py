"""Error taxonomy shared by agents, the orchestrator and the HTTP layer."""
from __future__ import annotations


class OrchestratorError(Exception):
    """Base class for every error the service reports to callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(OrchestratorError):
    """Malformed task, workflow definition or request payload."""

    status_code = 400


class UnsupportedTaskTypeError(ValidationError):
    """Task type outside the closed set an agent understands."""

    def __init__(self, agent_name: str, task_type: str) -> None:
        super().__init__(f"Unknown task type: {task_type}")
        self.agent_name = agent_name
        self.task_type = task_type


class NotFoundError(OrchestratorError):
    """Unknown agent or workflow name."""

    status_code = 404

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind} not found: {name}")
        self.kind = kind
        self.name = name


class DuplicateNameError(OrchestratorError):
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(f"Agent {name} is already registered")
        self.name = name


class CapacityExceededError(OrchestratorError):
    """Raised when admission control rejects a new workflow execution."""

    status_code = 503

    def __init__(self, limit: int) -> None:
        super().__init__(f"Maximum concurrent workflows reached ({limit})")
        self.limit = limit


class AgentExecutionError(OrchestratorError):
    """An agent handler failed and the caller asked for an exception."""

    def __init__(self, agent_name: str, message: str) -> None:
        super().__init__(f"{agent_name} failed: {message}")
        self.agent_name = agent_name
        self.reason = message


class EscalationError(OrchestratorError):
    """The escalation handler could not produce a result.

    Never surfaced to callers; the orchestrator logs it and falls back to the
    default escalation payload.
    """
