"""Quality assurance agent: checks designs, implementations and reasoning."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping

from multiagent.agents.base import Agent, Handler
from multiagent.core.models import Task


class VerificationTask(str, Enum):
    VERIFY_DESIGN = "verify-design"
    VERIFY_IMPLEMENTATION = "verify-implementation"
    VERIFY_LOGIC = "verify-logic"
    SUGGEST_IMPROVEMENTS = "suggest-improvements"
    ASSESS_QUALITY = "assess-quality"


# Escalate when a severity count exceeds its threshold.
ISSUE_THRESHOLDS = {"critical": 0, "high": 2, "medium": 5, "low": 10}

_IMPROVEMENTS = {
    "design": [
        {"area": "modularity", "suggestion": "Increase component isolation", "priority": "high"},
        {"area": "scalability", "suggestion": "Add horizontal scaling support", "priority": "medium"},
    ],
    "implementation": [
        {"area": "testing", "suggestion": "Increase test coverage", "priority": "high"},
        {"area": "documentation", "suggestion": "Add inline code comments", "priority": "medium"},
    ],
    "performance": [
        {"area": "caching", "suggestion": "Implement Redis caching", "priority": "high"},
        {"area": "queries", "suggestion": "Optimize database queries", "priority": "medium"},
    ],
    "architecture": [
        {"area": "patterns", "suggestion": "Apply SOLID principles", "priority": "high"},
        {"area": "coupling", "suggestion": "Reduce component coupling", "priority": "medium"},
    ],
}

_BASE_SCORES = {
    "correctness": 85,
    "completeness": 90,
    "efficiency": 80,
    "maintainability": 85,
    "security": 75,
}


def _issue(severity: str, category: str, message: str, suggestion: str) -> Dict[str, str]:
    return {"severity": severity, "category": category, "message": message, "suggestion": suggestion}


class VerificationAgent(Agent):
    """Flag errors and inefficiencies and decide when work needs escalation."""

    name = "VerificationAgent"
    role = "Quality Assurance and Improvement"
    task_kinds = VerificationTask

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            VerificationTask.VERIFY_DESIGN: self.verify_design,
            VerificationTask.VERIFY_IMPLEMENTATION: self.verify_implementation,
            VerificationTask.VERIFY_LOGIC: self.verify_logic,
            VerificationTask.SUGGEST_IMPROVEMENTS: self.suggest_improvements,
            VerificationTask.ASSESS_QUALITY: self.assess_quality,
        }

    async def verify_design(self, task: Task) -> Dict[str, Any]:
        design = task.data.get("design")
        if not isinstance(design, Mapping):
            raise ValueError("Design is required for verification")

        self._logger.info("verifying_design")
        issues: List[Dict[str, str]] = []
        architecture = design.get("architecture") or {}
        if not architecture.get("pattern"):
            issues.append(_issue(
                "high", "architecture", "Architecture pattern not defined",
                "Define a clear architecture pattern (e.g., layered, microservices)",
            ))
        if len(architecture.get("layers") or []) < 3:
            issues.append(_issue(
                "medium", "architecture", "Insufficient architectural layers",
                "Consider adding more layers for better separation of concerns",
            ))
        if not design.get("components"):
            issues.append(_issue(
                "critical", "components", "No components defined",
                "Define clear components with specific responsibilities",
            ))
        if not design.get("interfaces"):
            issues.append(_issue(
                "medium", "interfaces", "No interfaces defined",
                "Define interfaces for better modularity and testing",
            ))
        data_flow = design.get("dataFlow") or {}
        if not data_flow.get("input") or not data_flow.get("output"):
            issues.append(_issue(
                "high", "dataflow", "Data flow not clearly defined",
                "Document clear input, processing, and output flow",
            ))
        if len(design.get("edgeCases") or []) < 3:
            issues.append(_issue(
                "medium", "edge-cases", "Insufficient edge cases identified",
                "Consider more edge cases: empty input, timeouts, errors, invalid data",
            ))

        needs_escalation = should_escalate(issues)
        return {
            "verified": not issues,
            "issues": issues,
            "needsEscalation": needs_escalation,
            "alternatives": [
                "Consider event-driven architecture for better scalability",
                "Use CQRS pattern for read/write optimization",
                "Implement circuit breaker pattern for resilience",
            ] if needs_escalation else [],
            "reasoning": "Design verification completed with detailed issue analysis",
        }

    async def verify_implementation(self, task: Task) -> Dict[str, Any]:
        implementation = task.data.get("implementation")
        if not isinstance(implementation, Mapping):
            raise ValueError("Implementation is required for verification")

        self._logger.info("verifying_implementation")
        issues: List[Dict[str, str]] = []
        code = implementation.get("code") or {}
        if not code.get("files"):
            issues.append(_issue(
                "critical", "code-quality", "No code files defined",
                "Implement the required functionality",
            ))
        if not code.get("tests"):
            issues.append(_issue(
                "high", "code-quality", "No tests defined",
                "Add comprehensive unit and integration tests",
            ))
        error_handling = implementation.get("errorHandling") or {}
        if not error_handling.get("strategy"):
            issues.append(_issue(
                "high", "error-handling", "Error handling strategy not defined",
                "Define clear error handling and recovery strategy",
            ))
        if not implementation.get("edgeCaseHandling"):
            issues.append(_issue(
                "medium", "edge-cases", "Edge cases not implemented",
                "Implement handling for identified edge cases",
            ))
        logic = implementation.get("logic")
        if not implementation.get("optimizations") and "cache" not in str(logic or "").lower():
            issues.append(_issue(
                "low", "performance", "No performance optimizations identified",
                "Consider caching, connection pooling, or lazy loading",
            ))
        if not implementation.get("security") and not error_handling.get("logging"):
            issues.append(_issue(
                "high", "security", "Security measures not clearly defined",
                "Add input validation, authentication, and audit logging",
            ))

        return {
            "verified": not issues,
            "issues": issues,
            "needsEscalation": should_escalate(issues),
            "corrections": [
                {"issue": i["message"], "correction": i["suggestion"], "priority": i["severity"]}
                for i in issues
            ],
            "reasoning": "Implementation verification completed with identified issues and corrections",
        }

    async def verify_logic(self, task: Task) -> Dict[str, Any]:
        logic = task.data.get("logic")
        if not isinstance(logic, Mapping):
            raise ValueError("Logic is required for verification")

        issues: List[Dict[str, str]] = []
        if not logic.get("overview"):
            issues.append(_issue(
                "medium", "logic", "Logic overview missing",
                "Provide clear overview of logical approach",
            ))
        if not logic.get("assumptions"):
            issues.append(_issue(
                "medium", "assumptions", "No assumptions documented",
                "Document all assumptions made in the solution",
            ))
        if not logic.get("keyDecisions"):
            issues.append(_issue(
                "low", "rationale", "Decision rationale not documented",
                "Document reasoning behind key decisions",
            ))
        return {
            "verified": not issues,
            "issues": issues,
            "reasoning": "Logic verification completed with analysis of consistency and rationale",
        }

    async def suggest_improvements(self, task: Task) -> Dict[str, Any]:
        kind = task.data.get("type")
        self._logger.info("suggesting_improvements", type=kind)
        return {
            "improvements": [dict(item) for item in _IMPROVEMENTS.get(kind, [])],
            "reasoning": "Improvements suggested based on best practices and identified issues",
        }

    async def assess_quality(self, task: Task) -> Dict[str, Any]:
        scores = dict(_BASE_SCORES)
        overrides = task.data.get("scores") or {}
        scores.update({k: v for k, v in overrides.items() if k in scores})

        overall = sum(scores.values()) / len(scores)
        return {
            "assessment": {
                "scores": scores,
                "overallScore": overall,
                "grade": assign_grade(overall),
                "recommendations": [
                    {
                        "category": category,
                        "score": score,
                        "recommendation": f"Improve {category} to reach acceptable threshold (80+)",
                    }
                    for category, score in scores.items()
                    if score < 80
                ],
            },
            "reasoning": "Quality assessment completed with detailed scoring and recommendations",
        }


def should_escalate(issues: List[Dict[str, str]]) -> bool:
    critical = sum(1 for issue in issues if issue["severity"] == "critical")
    high = sum(1 for issue in issues if issue["severity"] == "high")
    return critical > ISSUE_THRESHOLDS["critical"] or high > ISSUE_THRESHOLDS["high"]


def assign_grade(score: float) -> str:
    for threshold, grade in ((90, "A"), (80, "B"), (70, "C"), (60, "D")):
        if score >= threshold:
            return grade
    return "F"
