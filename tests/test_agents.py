"""Tests for the agent base class and the built-in agents."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict

import pytest

from multiagent.agents.anomaly import AnomalyDetectionAgent, overall_severity
from multiagent.agents.base import Agent
from multiagent.agents.implementation import ImplementationAgent
from multiagent.agents.meta_prompt import MetaPromptOptimizer
from multiagent.agents.performance import PerformanceAuditor
from multiagent.agents.research import ResearchAgent
from multiagent.agents.user_interaction import UserInteractionAgent
from multiagent.agents.verification import VerificationAgent, assign_grade, should_escalate
from multiagent.core.errors import AgentExecutionError, ValidationError
from multiagent.core.models import AgentState, Task


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class EchoKind(str, Enum):
    ECHO = "echo"
    FAIL = "fail"


class EchoAgent(Agent):
    name = "Echo"
    role = "Test"
    task_kinds = EchoKind

    def handlers(self):
        return {EchoKind.ECHO: self.echo, EchoKind.FAIL: self.fail}

    async def echo(self, task: Task) -> Dict[str, Any]:
        return dict(task.data)

    async def fail(self, task: Task) -> Dict[str, Any]:
        raise ValueError("requested failure")


PROBLEM = (
    "Build a REST API for managing customer orders. "
    "It must support authentication and export reports."
)


# -- base class ----------------------------------------------------------


def test_agent_requires_handler_for_every_kind() -> None:
    class Incomplete(EchoAgent):
        def handlers(self):
            return {EchoKind.ECHO: self.echo}

    with pytest.raises(TypeError, match="fail"):
        Incomplete()


@pytest.mark.anyio
async def test_successful_task_updates_metrics_and_history() -> None:
    agent = EchoAgent()

    result = await agent.process({"type": "echo", "data": {"x": 1}})

    assert result.success is True
    assert result.agent == "Echo"
    assert result.data == {"x": 1}
    assert agent.state is AgentState.IDLE
    assert agent.metrics.tasks_processed == 1
    assert agent.metrics.errors == 0
    assert len(agent.history) == 1
    assert agent.history[0].task.type == "echo"


@pytest.mark.anyio
async def test_handler_error_becomes_failed_result() -> None:
    agent = EchoAgent()

    result = await agent.process(Task(type="fail", data={}))

    assert result.success is False
    assert result.error == "requested failure"
    assert agent.state is AgentState.ERROR
    assert agent.metrics.errors == 1
    assert agent.history[-1].error == "requested failure"


@pytest.mark.anyio
async def test_history_records_the_state_each_task_left_behind() -> None:
    agent = EchoAgent()

    await agent.process({"type": "echo", "data": {}})
    assert agent.history[-1].state is AgentState.IDLE

    await agent.process({"type": "fail", "data": {}})
    assert agent.history[-1].state is AgentState.ERROR

    await agent.process({"type": "echo", "data": {}})
    assert [entry.state for entry in agent.history] == [
        AgentState.IDLE,
        AgentState.ERROR,
        AgentState.IDLE,
    ]


@pytest.mark.anyio
async def test_empty_object_data_is_a_valid_task() -> None:
    result = await EchoAgent().process({"type": "echo", "data": {}})

    assert result.success is True
    assert result.data == {}


@pytest.mark.anyio
async def test_unknown_task_type_is_a_failed_result() -> None:
    agent = EchoAgent()

    result = await agent.process({"type": "fly", "data": {}})

    assert result.success is False
    assert result.error == "Unknown task type: fly"
    assert agent.state is AgentState.ERROR


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload",
    [
        None,
        "echo",
        {"data": {}},
        {"type": "", "data": {}},
        {"type": "echo"},
        {"type": "echo", "data": "text"},
        {"type": "echo", "data": [1]},
    ],
)
async def test_invalid_task_raises_before_any_state_change(payload: Any) -> None:
    agent = EchoAgent()

    with pytest.raises(ValidationError):
        await agent.process(payload)

    assert agent.state is AgentState.IDLE
    assert agent.metrics.tasks_processed == 0
    assert len(agent.history) == 0


@pytest.mark.anyio
async def test_history_is_bounded() -> None:
    agent = EchoAgent(history_size=3)

    for value in range(5):
        await agent.process({"type": "echo", "data": {"v": value}})

    assert [entry.task.data["v"] for entry in agent.history] == [2, 3, 4]
    assert agent.metrics.tasks_processed == 5


@pytest.mark.anyio
async def test_default_history_keeps_last_hundred() -> None:
    agent = EchoAgent()

    for value in range(105):
        await agent.process({"type": "echo", "data": {"v": value}})

    assert len(agent.history) == 100
    assert agent.history[0].task.data["v"] == 5


@pytest.mark.anyio
async def test_status_reads_are_stable_and_reset_clears_history() -> None:
    agent = EchoAgent()
    await agent.process({"type": "fail", "data": {}})

    assert agent.get_status() == agent.get_status()
    assert agent.get_status()["state"] == "error"
    assert agent.get_status()["historySize"] == 1

    agent.reset()
    status = agent.get_status()
    assert status["state"] == "idle"
    assert status["historySize"] == 0
    assert status["metrics"]["tasksProcessed"] == 1


@pytest.mark.anyio
async def test_execute_or_raise_raises_on_failure() -> None:
    agent = EchoAgent()

    with pytest.raises(AgentExecutionError, match="requested failure"):
        await agent.execute_or_raise({"type": "fail", "data": {}})
    assert (await agent.execute_or_raise({"type": "echo", "data": {"a": 1}})).data == {"a": 1}


@pytest.mark.anyio
async def test_average_processing_time_is_running_mean() -> None:
    agent = EchoAgent()
    agent.metrics.record(10)
    agent.metrics.record(20)
    agent.metrics.record(30, error=True)

    assert agent.metrics.average_processing_time == pytest.approx(20)
    assert agent.metrics.errors == 1


# -- research --------------------------------------------------------------


@pytest.mark.anyio
async def test_research_decomposes_problem_into_components() -> None:
    result = await ResearchAgent().process({"type": "decompose", "data": {"problem": PROBLEM}})

    assert result.success is True
    components = result.data["components"]
    assert [c["id"] for c in components] == ["component-1", "component-2"]
    assert components[0]["priority"] == "high"
    assert result.data["complexity"]["level"] == "low"
    assert result.data["dependencies"][1]["dependsOn"] == ["component-1"]


@pytest.mark.anyio
async def test_research_rejects_missing_problem() -> None:
    agent = ResearchAgent()

    result = await agent.process({"type": "decompose", "data": {}})

    assert result.success is False
    assert result.error == "Invalid problem description"
    assert agent.metrics.errors == 1


@pytest.mark.anyio
async def test_research_plan_estimates_from_description() -> None:
    components = [{"name": "Auth", "description": "one two three four five six seven eight nine ten"}]

    result = await ResearchAgent().process(
        {"type": "plan", "data": {"components": components, "constraints": {"timeLimit": 10}}}
    )

    plan = result.data["plan"]
    assert plan["phases"][0]["estimatedTime"] == 4
    assert plan["estimatedDuration"] == 4
    assert [risk["type"] for risk in plan["risks"]] == ["timeline"]


@pytest.mark.anyio
async def test_research_reuses_cached_topic() -> None:
    agent = ResearchAgent()

    first = await agent.process({"type": "research", "data": {"topic": "caching"}})
    second = await agent.process({"type": "research", "data": {"topic": "caching"}})

    assert first.data == second.data
    assert first.data["information"]["topic"] == "caching"


# -- implementation + verification ------------------------------------------


@pytest.mark.anyio
async def test_generated_design_passes_design_verification() -> None:
    design = await ImplementationAgent().process(
        {
            "type": "design",
            "data": {"component": {"name": "Orders"}, "requirements": {"distributed": True}},
        }
    )
    assert design.data["design"]["architecture"]["pattern"] == "microservices"

    verdict = await VerificationAgent().process({"type": "verify-design", "data": design.data})

    assert verdict.success is True
    assert verdict.data["verified"] is True
    assert verdict.data["needsEscalation"] is False
    assert verdict.data["alternatives"] == []


@pytest.mark.anyio
async def test_generated_implementation_only_lacks_optimizations() -> None:
    implementer = ImplementationAgent()
    design = await implementer.process(
        {"type": "design", "data": {"component": {"name": "Orders"}, "requirements": {}}}
    )
    built = await implementer.process(
        {"type": "implement", "data": {"design": design.data["design"], "component": {"name": "Orders"}}}
    )

    verdict = await VerificationAgent().process({"type": "verify-implementation", "data": built.data})

    assert [issue["category"] for issue in verdict.data["issues"]] == ["performance"]
    assert verdict.data["needsEscalation"] is False
    assert "Orders" in implementer.implementations


@pytest.mark.anyio
async def test_empty_design_needs_escalation() -> None:
    verdict = await VerificationAgent().process(
        {"type": "verify-design", "data": {"design": {"notes": "tbd"}}}
    )

    assert verdict.data["verified"] is False
    assert verdict.data["needsEscalation"] is True
    assert verdict.data["alternatives"]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "agent_cls, task_type, data",
    [
        (ImplementationAgent, "design", {"component": {}, "requirements": {}}),
        (ImplementationAgent, "implement", {"design": {}, "component": {}}),
        (ImplementationAgent, "document", {"implementation": {}}),
        (ImplementationAgent, "optimize", {"implementation": {}}),
        (VerificationAgent, "verify-design", {"design": {}}),
        (VerificationAgent, "verify-implementation", {"implementation": {}}),
        (VerificationAgent, "verify-logic", {"logic": {}}),
        (UserInteractionAgent, "integrate-feedback", {"feedback": [], "target": {}}),
    ],
)
async def test_empty_objects_are_accepted_as_inputs(agent_cls, task_type: str, data: Dict[str, Any]) -> None:
    result = await agent_cls().process({"type": task_type, "data": data})

    assert result.success is True, result.error


@pytest.mark.anyio
@pytest.mark.parametrize(
    "agent_cls, task_type, data",
    [
        (ImplementationAgent, "design", {"component": {}}),
        (ImplementationAgent, "implement", {"design": "v1", "component": {}}),
        (ImplementationAgent, "document", {}),
        (ImplementationAgent, "optimize", {}),
        (VerificationAgent, "verify-design", {"design": None}),
        (VerificationAgent, "verify-implementation", {"implementation": []}),
        (VerificationAgent, "verify-logic", {}),
        (UserInteractionAgent, "integrate-feedback", {"feedback": {}, "target": {}}),
    ],
)
async def test_missing_or_non_object_inputs_fail(agent_cls, task_type: str, data: Dict[str, Any]) -> None:
    agent = agent_cls()

    result = await agent.process({"type": task_type, "data": data})

    assert result.success is False
    assert "required" in result.error
    assert agent.state is AgentState.ERROR


@pytest.mark.anyio
async def test_empty_implementation_verifies_with_every_gap_reported() -> None:
    verdict = await VerificationAgent().process(
        {"type": "verify-implementation", "data": {"implementation": {}}}
    )

    assert verdict.success is True
    assert verdict.data["verified"] is False
    assert verdict.data["issues"]


@pytest.mark.anyio
async def test_empty_feedback_leaves_target_unchanged() -> None:
    result = await UserInteractionAgent().process(
        {"type": "integrate-feedback", "data": {"feedback": [], "target": {}}}
    )

    integration = result.data["integration"]
    assert integration["refinedTarget"] == {}
    assert integration["changes"] == []
    assert integration["validation"]["allApplied"] is True


def test_escalation_thresholds() -> None:
    assert should_escalate([{"severity": "critical"}]) is True
    assert should_escalate([{"severity": "high"}] * 2) is False
    assert should_escalate([{"severity": "high"}] * 3) is True
    assert should_escalate([{"severity": "medium"}] * 6) is False


@pytest.mark.parametrize(
    "score, grade", [(95, "A"), (90, "A"), (85, "B"), (70, "C"), (60, "D"), (59.9, "F")]
)
def test_assign_grade(score: float, grade: str) -> None:
    assert assign_grade(score) == grade


@pytest.mark.anyio
async def test_quality_assessment_scores_and_recommends() -> None:
    result = await VerificationAgent().process({"type": "assess-quality", "data": {}})

    assessment = result.data["assessment"]
    assert assessment["overallScore"] == pytest.approx(83)
    assert assessment["grade"] == "B"
    assert [r["category"] for r in assessment["recommendations"]] == ["security"]


# -- meta prompt -------------------------------------------------------------


@pytest.mark.anyio
async def test_meta_prompt_learns_patterns_from_successful_prompts() -> None:
    agent = MetaPromptOptimizer()
    prompt = "Goal: create a parser\nfor example CSV input"
    for _ in range(4):
        await agent.process(
            {"type": "analyze-prompt", "data": {"prompt": prompt, "outcome": {"success": True}}}
        )

    result = await agent.process({"type": "learn-patterns", "data": {}})

    assert result.data["patternsLearned"] == 2
    assert set(agent.patterns) == {"examples-improve-success", "structure-improves-clarity"}


@pytest.mark.anyio
async def test_meta_prompt_requires_prompt_text() -> None:
    result = await MetaPromptOptimizer().process({"type": "optimize-prompt", "data": {}})

    assert result.success is False
    assert result.error == "Prompt text is required"


@pytest.mark.anyio
async def test_meta_prompt_adds_structure_to_flat_prompt() -> None:
    result = await MetaPromptOptimizer().process(
        {"type": "optimize-prompt", "data": {"prompt": "Write a parser", "goals": {"primary": "Parse"}}}
    )

    optimized = result.data["optimizations"]["optimized"]
    assert optimized.startswith("Goal: Parse\n\nWrite a parser")
    assert optimized.endswith("Provide specific, measurable outcomes where possible.")


# -- performance --------------------------------------------------------------


@pytest.mark.anyio
async def test_compare_metrics_reports_ratios_and_regressions() -> None:
    result = await PerformanceAuditor().process(
        {
            "type": "compare-metrics",
            "data": {
                "baseline": {"throughput": 100, "accuracy": 90},
                "current": {"throughput": 150, "accuracy": 80},
            },
        }
    )

    comparison = result.data["comparison"]
    assert comparison["improvements"] == {"throughput": "1.50x", "accuracy": "0.89x"}
    assert comparison["regressions"] == [
        {"metric": "accuracy", "baseline": 90, "current": 80, "change": "-11.11%"}
    ]


@pytest.mark.anyio
async def test_compliance_audit_uses_declared_compliance() -> None:
    result = await PerformanceAuditor().process(
        {
            "type": "audit-compliance",
            "data": {
                "standards": ["ISO27001"],
                "regulations": ["GDPR"],
                "solution": {
                    "compliesWith": ["ISO27001"],
                    "hasRetentionPolicy": True,
                    "wcagCompliant": True,
                },
            },
        }
    )

    audit = result.data["audit"]
    assert audit["standards"][0]["compliant"] is True
    assert audit["regulations"][0]["compliant"] is False
    assert [gap["gap"] for gap in audit["gaps"]] == ["Not compliant with GDPR"]


@pytest.mark.anyio
async def test_performance_audit_checks_benchmarks() -> None:
    result = await PerformanceAuditor().process(
        {"type": "audit-performance", "data": {"metrics": {"responseTime": 500, "cost": 2, "accuracy": 97}}}
    )

    assert result.data["audit"]["meetsBenchmarks"] == {"speed": True, "cost": False, "accuracy": True}


# -- anomaly detection ---------------------------------------------------------


@pytest.mark.anyio
async def test_anomaly_detection_flags_metrics_and_failed_steps() -> None:
    result = await AnomalyDetectionAgent().process(
        {
            "type": "detect-anomalies",
            "data": {
                "metrics": {"responseTime": 6000, "errorRate": 0.1},
                "workflowResults": [{"step": "build", "result": {"success": False}}],
            },
        }
    )

    types = [anomaly["type"] for anomaly in result.data["anomalies"]]
    assert types == ["performance-degradation", "high-error-rate", "failed-steps"]
    assert result.data["severity"] == "critical"
    assert result.data["recoveryRequired"] is True


@pytest.mark.anyio
async def test_recovery_picks_strategy_by_anomaly_type() -> None:
    agent = AnomalyDetectionAgent()

    timeout = await agent.process({"type": "recover", "data": {"anomaly": {"type": "timeout"}}})
    unknown = await agent.process({"type": "recover", "data": {"anomaly": {"type": "gremlins"}}})
    invalid = await agent.process({"type": "recover", "data": {}})

    assert timeout.data["recovery"]["strategy"] == "retry"
    assert len(timeout.data["recovery"]["steps"]) == 3
    assert unknown.data["recovery"]["strategy"] == "log"
    assert invalid.success is False


def test_overall_severity_defaults_to_low() -> None:
    assert overall_severity([]) == "low"
    assert overall_severity([{"severity": "medium"}, {"severity": "high"}]) == "high"


# -- user interaction -----------------------------------------------------------


@pytest.mark.anyio
async def test_escalation_task_summarises_failure() -> None:
    result = await UserInteractionAgent().process(
        {
            "type": "escalation",
            "data": {
                "workflow": "complete-solution",
                "failedStep": "verify-design",
                "error": {"success": False, "error": "Design is required for verification"},
                "previousResults": [
                    {"step": "research-and-plan", "result": {"success": True}},
                    {"step": "verify-design", "result": {"success": False}},
                ],
            },
        }
    )

    escalation = result.data["escalation"]
    assert escalation["reason"] == "Design is required for verification"
    assert escalation["completedSteps"] == ["research-and-plan"]
    assert escalation["questions"][0]["priority"] == "high"


@pytest.mark.anyio
async def test_personalization_is_remembered_for_later_questions() -> None:
    agent = UserInteractionAgent()

    personalized = await agent.process(
        {
            "type": "personalize-interaction",
            "data": {"userId": "u1", "expertise": "beginner", "content": "We implement and optimize it"},
        }
    )
    clarification = await agent.process(
        {
            "type": "request-clarification",
            "data": {"userId": "u1", "ambiguities": [{"type": "requirement", "topic": "how to implement it"}]},
        }
    )

    assert personalized.data["personalized"]["adapted"] == "We build and improve it"
    assert clarification.data["questions"][0]["question"] == (
        "Could you provide more details about how to build it?"
    )


@pytest.mark.anyio
async def test_feedback_integration_applies_field_changes() -> None:
    result = await UserInteractionAgent().process(
        {
            "type": "integrate-feedback",
            "data": {
                "target": {"title": "Old", "size": 1},
                "feedback": [{"field": "title", "newValue": "New"}, {"changes": {"size": 2}}],
            },
        }
    )

    integration = result.data["integration"]
    assert integration["refinedTarget"] == {"title": "New", "size": 2}
    assert integration["originalTarget"] == {"title": "Old", "size": 1}
    assert integration["validation"]["allApplied"] is True
