"""Core data models shared across orchestrator components."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError


def utc_now() -> str:
    """ISO-8601 timestamp used on every result and history entry."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class AgentState(Enum):
    """Operating states an agent moves through while handling tasks."""

    IDLE = "idle"
    PROCESSING = "processing"
    ERROR = "error"


@dataclass(slots=True)
class Task:
    """Unit of work handed to an agent."""

    type: str
    data: Dict[str, Any]
    step_name: Optional[str] = None
    step_config: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Any) -> Task:
        if not isinstance(payload, Mapping):
            raise ValidationError("Invalid task: must be an object")
        task = cls(
            type=payload.get("type"),
            data=payload.get("data"),
            step_name=payload.get("stepName"),
            step_config=payload.get("stepConfig"),
        )
        task.validate()
        return task

    def validate(self) -> None:
        if not isinstance(self.type, str) or not self.type:
            raise ValidationError("Invalid task: missing type field")
        if self.data is None:
            raise ValidationError("Invalid task: missing data field")
        if not isinstance(self.data, Mapping):
            raise ValidationError("Invalid task: data must be an object")

    def for_step(self, step: WorkflowStep) -> Task:
        return dataclasses.replace(self, step_name=step.name, step_config=dict(step.config))

    def with_data(self, data: Dict[str, Any]) -> Task:
        return dataclasses.replace(self, data=data)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "data": self.data}
        if self.step_name is not None:
            payload["stepName"] = self.step_name
        if self.step_config is not None:
            payload["stepConfig"] = self.step_config
        return payload


@dataclass(slots=True)
class AgentResult:
    """Outcome of a single ``Agent.process`` call."""

    success: bool
    agent: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "agent": self.agent,
            "timestamp": self.timestamp,
        }
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class AgentMetrics:
    """Cumulative counters maintained by each agent."""

    tasks_processed: int = 0
    errors: int = 0
    average_processing_time: float = 0.0

    def record(self, duration_ms: float, error: bool = False) -> None:
        self.tasks_processed += 1
        if error:
            self.errors += 1
        total = self.average_processing_time * (self.tasks_processed - 1)
        self.average_processing_time = (total + duration_ms) / self.tasks_processed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasksProcessed": self.tasks_processed,
            "errors": self.errors,
            "averageProcessingTime": self.average_processing_time,
        }


@dataclass(slots=True)
class HistoryEntry:
    task: Task
    result: Optional[AgentResult]
    error: Optional[str]
    state: AgentState
    timestamp: str = field(default_factory=utc_now)


@dataclass(slots=True)
class WorkflowStep:
    """One step of a workflow, bound to an agent by name."""

    name: str
    agent_name: str
    config: Dict[str, Any] = field(default_factory=dict)
    retries: int = 1
    escalate_on_failure: bool = False

    def __post_init__(self) -> None:
        if not self.name or not self.agent_name:
            raise ValidationError("Workflow step requires a name and an agent name")
        if isinstance(self.retries, bool) or not isinstance(self.retries, int):
            raise ValidationError(f"Workflow step {self.name} retries must be an integer")
        if self.retries < 1:
            raise ValidationError(f"Workflow step {self.name} must allow at least one attempt")

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> WorkflowStep:
        return cls(
            name=payload.get("name", ""),
            agent_name=payload.get("agentName", ""),
            config=dict(payload.get("config") or {}),
            retries=payload.get("retries", 1),
            escalate_on_failure=bool(payload.get("escalateOnFailure", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "agentName": self.agent_name,
            "config": self.config,
            "retries": self.retries,
            "escalateOnFailure": self.escalate_on_failure,
        }


@dataclass(slots=True)
class WorkflowDefinition:
    """Named, ordered list of steps plus an optional escalation handler."""

    name: str
    steps: List[WorkflowStep]
    escalation_handler: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> WorkflowDefinition:
        if not isinstance(payload, Mapping):
            raise ValidationError("Workflow definition must be an object")
        steps = payload.get("steps")
        if not isinstance(steps, list):
            raise ValidationError("Workflow definition requires a list of steps")
        return cls(
            name=payload.get("name", ""),
            steps=[WorkflowStep.from_dict(step) for step in steps],
            escalation_handler=payload.get("escalationHandler"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "steps": [step.to_dict() for step in self.steps],
            "escalationHandler": self.escalation_handler,
        }


@dataclass(slots=True)
class StepRecord:
    step: str
    agent: str
    result: AgentResult

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "agent": self.agent, "result": self.result.to_dict()}


@dataclass(slots=True)
class WorkflowResult:
    """Outcome of a workflow that ran every step without escalating."""

    workflow: str
    results: List[StepRecord]
    duration: float
    success: bool = True
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "workflow": self.workflow,
            "results": [record.to_dict() for record in self.results],
            "duration": self.duration,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class EscalationResult:
    """Outcome of a workflow that stopped on an escalated step failure."""

    workflow: str
    failed_step: str
    error: AgentResult
    previous_results: List[StepRecord]
    escalation_result: Optional[AgentResult] = None
    success: bool = False
    escalated: bool = True
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "escalated": self.escalated,
            "workflow": self.workflow,
            "failedStep": self.failed_step,
            "error": self.error.to_dict(),
            "previousResults": [record.to_dict() for record in self.previous_results],
            "timestamp": self.timestamp,
        }
        if self.escalation_result is not None:
            payload["escalationResult"] = self.escalation_result.to_dict()
        return payload
