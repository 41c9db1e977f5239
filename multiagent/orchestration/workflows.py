"""Built-in workflow definitions registered at startup."""
from __future__ import annotations

from typing import Dict, List, Tuple

from multiagent.core.models import WorkflowDefinition, WorkflowStep
from multiagent.orchestration.orchestrator import Orchestrator

ESCALATION_HANDLER = "UserInteractionAgent"

# (step name, agent name, retries, escalate on failure)
_StepRow = Tuple[str, str, int, bool]

STANDARD_WORKFLOWS: Dict[str, List[_StepRow]] = {
    "complete-solution": [
        ("research-and-plan", "ResearchAgent", 2, False),
        ("design-solution", "ImplementationAgent", 2, False),
        ("verify-design", "VerificationAgent", 1, True),
        ("implement-solution", "ImplementationAgent", 2, False),
        ("verify-implementation", "VerificationAgent", 1, True),
        ("audit-performance", "PerformanceAuditor", 1, False),
        ("detect-anomalies", "AnomalyDetectionAgent", 1, True),
    ],
    "iterative-refinement": [
        ("analyze-prompt", "MetaPromptOptimizer", 1, False),
        ("optimize-prompt", "MetaPromptOptimizer", 1, False),
        ("research-improved", "ResearchAgent", 2, False),
        ("implement-improved", "ImplementationAgent", 2, False),
        ("verify-improved", "VerificationAgent", 1, True),
        ("audit-improvements", "PerformanceAuditor", 1, False),
    ],
    "quality-assurance": [
        ("verify-logic", "VerificationAgent", 1, False),
        ("verify-implementation", "VerificationAgent", 1, True),
        ("assess-quality", "VerificationAgent", 1, False),
        ("detect-anomalies", "AnomalyDetectionAgent", 1, False),
        ("audit-performance", "PerformanceAuditor", 1, False),
        ("audit-ethics", "PerformanceAuditor", 1, True),
    ],
}


def build_workflow(name: str, steps: List[_StepRow]) -> WorkflowDefinition:
    return WorkflowDefinition(
        name=name,
        steps=[
            WorkflowStep(name=step, agent_name=agent, retries=retries, escalate_on_failure=escalate)
            for step, agent, retries, escalate in steps
        ],
        escalation_handler=ESCALATION_HANDLER,
    )


def register_standard_workflows(orchestrator: Orchestrator) -> None:
    for name, steps in STANDARD_WORKFLOWS.items():
        orchestrator.register_workflow(name, build_workflow(name, steps))
