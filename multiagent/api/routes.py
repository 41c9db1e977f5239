"""HTTP API exposing agents directly."""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from multiagent.agents.base import Agent
from multiagent.core.logging import get_logger
from multiagent.orchestration.orchestrator import Orchestrator
from multiagent.runtime import get_orchestrator

router = APIRouter(tags=["agents"])
logger = get_logger(__name__)


class AgentExecuteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agent_name: str = Field(..., alias="agentName", min_length=1, description="Registered agent name")
    task: Dict[str, Any] = Field(..., description="Task object with type and data")


class AgentSummary(BaseModel):
    name: str
    role: str
    state: str

    @classmethod
    def from_agent(cls, agent: Agent) -> "AgentSummary":
        return cls(name=agent.name, role=agent.role, state=agent.state.value)


class AgentListResponse(BaseModel):
    agents: List[AgentSummary]
    count: int


@router.get("/agents", response_model=AgentListResponse)
async def list_agents(orchestrator: Orchestrator = Depends(get_orchestrator)) -> AgentListResponse:
    agents = [AgentSummary.from_agent(agent) for agent in orchestrator.list_agents()]
    return AgentListResponse(agents=agents, count=len(agents))


@router.get("/agent/{agent_name}/status")
async def agent_status(
    agent_name: str, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> Dict[str, Any]:
    return orchestrator.get_agent(agent_name).get_status()


@router.post("/agent/execute")
async def execute_agent(
    request: AgentExecuteRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    agent = orchestrator.get_agent(request.agent_name)
    logger.info("executing_agent_task", agent=agent.name, task_type=request.task.get("type"))
    result = await agent.process(request.task)
    return {"success": result.success, "agent": agent.name, "result": result.to_dict()}
