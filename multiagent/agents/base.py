"""Base agent definition used by the orchestrator."""
from __future__ import annotations

import abc
import time
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Deque, Dict, Mapping, Optional, Type, Union

from multiagent.core.errors import AgentExecutionError, UnsupportedTaskTypeError, ValidationError
from multiagent.core.logging import get_logger
from multiagent.core.models import AgentMetrics, AgentResult, AgentState, HistoryEntry, Task

Handler = Callable[[Task], Awaitable[Dict[str, Any]]]

HISTORY_SIZE = 100


class Agent(abc.ABC):
    """Abstract agent: validates tasks, dispatches by kind, tracks state and metrics.

    Subclasses declare ``task_kinds``, a string ``Enum`` listing every task type
    they accept, and return one handler per member from :meth:`handlers`.
    """

    name: ClassVar[str]
    role: ClassVar[str]
    task_kinds: ClassVar[Type[Enum]]

    def __init__(self, name: Optional[str] = None, history_size: int = HISTORY_SIZE) -> None:
        if name:
            self.name = name
        self.state = AgentState.IDLE
        self.metrics = AgentMetrics()
        self.history: Deque[HistoryEntry] = deque(maxlen=history_size)
        self._logger = get_logger(__name__, agent=self.name, role=self.role)
        self._handlers = dict(self.handlers())
        missing = [kind.value for kind in self.task_kinds if kind not in self._handlers]
        if missing:
            raise TypeError(f"{type(self).__name__} has no handler for: {', '.join(missing)}")

    @abc.abstractmethod
    def handlers(self) -> Mapping[Enum, Handler]:
        """Return the handler for each member of ``task_kinds``."""

    async def process(self, task: Union[Task, Mapping[str, Any]]) -> AgentResult:
        """Run one task and report the outcome as an ``AgentResult``.

        Malformed tasks raise ``ValidationError`` before any state changes.
        Handler failures never raise: they come back as ``success=False``.
        """
        task = self.validate_task(task)
        self.set_state(AgentState.PROCESSING)
        started = time.perf_counter()

        try:
            handler = self._handlers[self.resolve_kind(task.type)]
            data = await handler(task)
        except Exception as exc:  # noqa: BLE001
            return self.handle_error(exc, task, _elapsed_ms(started))

        self.metrics.record(_elapsed_ms(started), error=False)
        result = AgentResult(success=True, agent=self.name, data=data)
        self.set_state(AgentState.IDLE)
        self.record_task(task, result)
        return result

    async def execute_or_raise(self, task: Union[Task, Mapping[str, Any]]) -> AgentResult:
        """Like :meth:`process` but turn a failed result into ``AgentExecutionError``."""
        result = await self.process(task)
        if not result.success:
            raise AgentExecutionError(self.name, result.error or "unknown error")
        return result

    def resolve_kind(self, task_type: str) -> Enum:
        try:
            return self.task_kinds(task_type)
        except ValueError:
            raise UnsupportedTaskTypeError(self.name, task_type) from None

    @staticmethod
    def validate_task(task: Union[Task, Mapping[str, Any]]) -> Task:
        if isinstance(task, Task):
            task.validate()
            return task
        if isinstance(task, Mapping):
            return Task.from_dict(task)
        raise ValidationError("Invalid task: must be an object")

    def set_state(self, new_state: AgentState) -> None:
        old_state = self.state
        self.state = new_state
        self._logger.debug("state_transition", old=old_state.value, new=new_state.value)

    def record_task(self, task: Task, result: AgentResult, error: Optional[str] = None) -> None:
        self.history.append(
            HistoryEntry(task=task, result=result, error=error, state=self.state)
        )

    def handle_error(self, exc: Exception, task: Task, duration_ms: float) -> AgentResult:
        self._logger.error("task_failed", task_type=task.type, step=task.step_name, error=str(exc))
        self.metrics.record(duration_ms, error=True)
        self.set_state(AgentState.ERROR)
        result = AgentResult(success=False, agent=self.name, error=str(exc))
        self.record_task(task, result, error=str(exc))
        return result

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "role": self.role,
            "state": self.state.value,
            "metrics": self.metrics.to_dict(),
            "historySize": len(self.history),
        }

    def reset(self) -> None:
        """Forget history and return to idle; metrics are cumulative and kept."""
        self.history.clear()
        self.set_state(AgentState.IDLE)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
