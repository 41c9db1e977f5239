"""HTTP API for listing and running workflows."""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from multiagent.core.logging import get_logger
from multiagent.orchestration.orchestrator import Orchestrator
from multiagent.runtime import get_orchestrator

router = APIRouter(tags=["workflows"])
logger = get_logger(__name__)


class WorkflowExecuteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workflow_name: str = Field(..., alias="workflowName", min_length=1, description="Registered workflow name")
    task: Dict[str, Any] = Field(..., description="Initial task object with type and data")


class WorkflowListResponse(BaseModel):
    workflows: List[str]
    count: int


@router.get("/workflows", response_model=WorkflowListResponse)
async def list_workflows(orchestrator: Orchestrator = Depends(get_orchestrator)) -> WorkflowListResponse:
    names = orchestrator.list_workflows()
    return WorkflowListResponse(workflows=names, count=len(names))


@router.post("/workflow/execute")
async def execute_workflow(
    request: WorkflowExecuteRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    logger.info("executing_workflow", workflow=request.workflow_name, task_type=request.task.get("type"))
    outcome = await orchestrator.execute_workflow(request.workflow_name, request.task)
    return {"success": True, "workflow": request.workflow_name, "result": outcome.to_dict()}
