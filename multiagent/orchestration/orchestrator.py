"""Orchestrator owning the agent and workflow registries and running workflows."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from multiagent.agents.base import Agent
from multiagent.core.errors import (
    CapacityExceededError,
    DuplicateNameError,
    EscalationError,
    NotFoundError,
)
from multiagent.core.logging import get_logger
from multiagent.core.models import (
    AgentResult,
    EscalationResult,
    StepRecord,
    Task,
    WorkflowDefinition,
    WorkflowResult,
    WorkflowStep,
    utc_now,
)

Sleep = Callable[[float], Awaitable[Any]]
ExecutionOutcome = Union[WorkflowResult, EscalationResult]

DEFAULT_MAX_CONCURRENT = 10
DEFAULT_MAX_RETRIES = 3


class Orchestrator:
    """Register agents and workflows, then run workflows step by step.

    Everything runs on one asyncio event loop. The admission check and the
    counter increment in :meth:`execute_workflow` have no ``await`` between
    them, so concurrent executions cannot both pass a full check.
    """

    def __init__(
        self,
        *,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        backoff_base_ms: float = 100,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._agents: Dict[str, Agent] = {}
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self.max_concurrent = max_concurrent
        self.backoff_base_ms = backoff_base_ms
        self.active_executions = 0
        self._sleep: Sleep = sleep or asyncio.sleep
        self._logger = get_logger(__name__, component="Orchestrator")

    # -- agent registry -------------------------------------------------

    def register_agent(self, agent: Agent) -> None:
        if agent.name in self._agents:
            raise DuplicateNameError(agent.name)
        self._agents[agent.name] = agent
        self._logger.info("agent_registered", agent=agent.name, role=agent.role)

    def get_agent(self, name: str) -> Agent:
        agent = self._agents.get(name)
        if agent is None:
            raise NotFoundError("Agent", name)
        return agent

    def list_agents(self) -> List[Agent]:
        return list(self._agents.values())

    # -- workflow registry ----------------------------------------------

    def register_workflow(
        self, name: str, definition: Union[WorkflowDefinition, Mapping[str, Any]]
    ) -> None:
        """Insert or silently replace a workflow; step agents are bound at run time."""
        if not isinstance(definition, WorkflowDefinition):
            definition = WorkflowDefinition.from_dict({"name": name, **definition})
        self._workflows[name] = definition
        self._logger.info("workflow_registered", workflow=name, steps=len(definition.steps))

    def get_workflow(self, name: str) -> WorkflowDefinition:
        workflow = self._workflows.get(name)
        if workflow is None:
            raise NotFoundError("Workflow", name)
        return workflow

    def list_workflows(self) -> List[str]:
        return list(self._workflows)

    # -- execution ------------------------------------------------------

    async def execute_workflow(
        self, workflow_name: str, initial_task: Union[Task, Mapping[str, Any]]
    ) -> ExecutionOutcome:
        workflow = self.get_workflow(workflow_name)
        task = Agent.validate_task(initial_task)

        if self.active_executions >= self.max_concurrent:
            self._logger.warning(
                "workflow_rejected", workflow=workflow_name, active=self.active_executions
            )
            raise CapacityExceededError(self.max_concurrent)

        self.active_executions += 1
        log = self._logger.bind(workflow=workflow_name)
        log.info("workflow_started", task_type=task.type, active=self.active_executions)
        started = time.perf_counter()

        try:
            results: List[StepRecord] = []
            for step in workflow.steps:
                agent = self.get_agent(step.agent_name)
                log.info("step_started", step=step.name, agent=agent.name)

                step_task = task.for_step(step)
                try:
                    result = await self.execute_with_retry(agent, step_task, step.retries)
                except Exception as exc:  # noqa: BLE001
                    result = AgentResult(success=False, agent=agent.name, error=str(exc))
                results.append(StepRecord(step=step.name, agent=agent.name, result=result))

                if not result.success and step.escalate_on_failure:
                    log.warning("step_failed_escalating", step=step.name, error=result.error)
                    return await self.handle_escalation(workflow, step, result, results)
                if not result.success:
                    log.warning("step_failed_continuing", step=step.name, error=result.error)

                if result.data is not None:
                    task = task.with_data(result.data)

            duration = (time.perf_counter() - started) * 1000
            log.info("workflow_completed", duration_ms=round(duration, 2), steps=len(results))
            return WorkflowResult(workflow=workflow_name, results=results, duration=duration)
        except Exception as exc:
            log.error("workflow_failed", error=str(exc))
            raise
        finally:
            self.active_executions -= 1

    async def execute_with_retry(
        self, agent: Agent, task: Task, max_retries: int = DEFAULT_MAX_RETRIES
    ) -> AgentResult:
        """Run ``agent.process`` until it succeeds or the attempts run out.

        Raised errors and unsuccessful results both count as failed attempts.
        Waits ``2**attempt * backoff_base_ms`` between attempts. When every
        attempt failed, the last error is re-raised, or the last failed result
        returned if that attempt did not raise.
        """
        attempts = max(1, max_retries)
        last_error: Optional[Exception] = None
        last_result: Optional[AgentResult] = None

        for attempt in range(1, attempts + 1):
            try:
                result = await agent.process(task)
            except Exception as exc:  # noqa: BLE001
                last_error, last_result = exc, None
                failure = str(exc)
            else:
                if result.success:
                    return result
                last_error, last_result = None, result
                failure = result.error

            self._logger.warning(
                "agent_attempt_failed",
                agent=agent.name,
                attempt=attempt,
                max_attempts=attempts,
                error=failure,
            )
            if attempt < attempts:
                await self._sleep((2**attempt) * self.backoff_base_ms / 1000)

        if last_error is not None:
            raise last_error
        return last_result

    async def handle_escalation(
        self,
        workflow: WorkflowDefinition,
        failed_step: WorkflowStep,
        result: AgentResult,
        previous_results: List[StepRecord],
    ) -> EscalationResult:
        """Hand a failed step to the workflow's escalation handler; never raises."""
        self._logger.info("handling_escalation", workflow=workflow.name, failed_step=failed_step.name)
        outcome = EscalationResult(
            workflow=workflow.name,
            failed_step=failed_step.name,
            error=result,
            previous_results=previous_results,
        )
        if not workflow.escalation_handler:
            return outcome

        try:
            outcome.escalation_result = await self._invoke_escalation_handler(
                workflow, failed_step, result, previous_results
            )
        except EscalationError as exc:
            self._logger.error("escalation_handler_failed", workflow=workflow.name, error=str(exc))
        return outcome

    async def _invoke_escalation_handler(
        self,
        workflow: WorkflowDefinition,
        failed_step: WorkflowStep,
        result: AgentResult,
        previous_results: List[StepRecord],
    ) -> AgentResult:
        handler_name = workflow.escalation_handler
        try:
            handler = self.get_agent(handler_name)
            return await handler.process(
                Task(
                    type="escalation",
                    data={
                        "workflow": workflow.name,
                        "failedStep": failed_step.name,
                        "error": result.to_dict(),
                        "previousResults": [record.to_dict() for record in previous_results],
                    },
                )
            )
        except Exception as exc:  # noqa: BLE001
            raise EscalationError(f"{handler_name}: {exc}") from exc

    def get_status(self) -> Dict[str, Any]:
        return {
            "activeExecutions": self.active_executions,
            "maxConcurrent": self.max_concurrent,
            "registeredAgents": len(self._agents),
            "registeredWorkflows": len(self._workflows),
            "agents": [agent.get_status() for agent in self._agents.values()],
            "timestamp": utc_now(),
        }
