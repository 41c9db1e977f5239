"""Application runtime composition helpers."""
from __future__ import annotations

from typing import Optional, Tuple, Type

from fastapi import Request

from multiagent.agents.anomaly import AnomalyDetectionAgent
from multiagent.agents.base import Agent
from multiagent.agents.implementation import ImplementationAgent
from multiagent.agents.meta_prompt import MetaPromptOptimizer
from multiagent.agents.performance import PerformanceAuditor
from multiagent.agents.research import ResearchAgent
from multiagent.agents.user_interaction import UserInteractionAgent
from multiagent.agents.verification import VerificationAgent
from multiagent.config import Config
from multiagent.orchestration.orchestrator import Orchestrator
from multiagent.orchestration.workflows import register_standard_workflows

AGENT_CATALOG: Tuple[Type[Agent], ...] = (
    ResearchAgent,
    ImplementationAgent,
    VerificationAgent,
    MetaPromptOptimizer,
    PerformanceAuditor,
    AnomalyDetectionAgent,
    UserInteractionAgent,
)


def build_orchestrator(config: Optional[Config] = None, **overrides) -> Orchestrator:
    """Create an orchestrator with every catalog agent and the standard workflows."""
    config = config or Config.from_env()
    options = {
        "max_concurrent": config.max_concurrent_workflows,
        "backoff_base_ms": config.retry_backoff_ms,
    }
    options.update(overrides)

    orchestrator = Orchestrator(**options)
    for agent_cls in AGENT_CATALOG:
        orchestrator.register_agent(agent_cls())
    register_standard_workflows(orchestrator)
    return orchestrator


def get_orchestrator(request: Request) -> Orchestrator:
    """FastAPI dependency returning the orchestrator owned by the running app."""
    return request.app.state.orchestrator
