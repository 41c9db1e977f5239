"""Performance, ethics and compliance auditing agent."""
from __future__ import annotations

import time
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, List, Mapping

from multiagent.agents.base import Agent, Handler
from multiagent.core.models import Task

BENCHMARKS = {
    "speed": {"target": 1000, "unit": "ms"},
    "cost": {"target": 1.0, "unit": "USD"},
    "accuracy": {"target": 95, "unit": "%"},
}


class AuditTask(str, Enum):
    AUDIT_PERFORMANCE = "audit-performance"
    AUDIT_ETHICS = "audit-ethics"
    AUDIT_COMPLIANCE = "audit-compliance"
    COMPARE_METRICS = "compare-metrics"


class PerformanceAuditor(Agent):
    """Score solutions against speed/cost/accuracy targets and ethical criteria."""

    name = "PerformanceAuditor"
    role = "Performance and Ethical Review"
    task_kinds = AuditTask

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.audit_history: Deque[Dict[str, Any]] = deque(maxlen=100)

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            AuditTask.AUDIT_PERFORMANCE: self.audit_performance,
            AuditTask.AUDIT_ETHICS: self.audit_ethics,
            AuditTask.AUDIT_COMPLIANCE: self.audit_compliance,
            AuditTask.COMPARE_METRICS: self.compare_metrics,
        }

    async def audit_performance(self, task: Task) -> Dict[str, Any]:
        solution = task.data.get("solution") or {}
        metrics = task.data.get("metrics") or {}
        targets = task.data.get("targets") or {}

        response_time = metrics.get("responseTime", 0)
        cost = metrics.get("cost", 0)
        accuracy = metrics.get("accuracy", 0)
        cpu = metrics.get("cpuUsage", 50)
        memory = metrics.get("memoryUsage", 50)

        audit = {
            "speed": _upper_bound_check(response_time, "speed"),
            "cost": _upper_bound_check(cost, "cost"),
            "accuracy": {
                "value": accuracy,
                "unit": "%",
                "benchmark": BENCHMARKS["accuracy"]["target"],
                "status": "pass" if accuracy >= BENCHMARKS["accuracy"]["target"] else "fail",
                "score": accuracy / BENCHMARKS["accuracy"]["target"] * 100,
            },
            "scalability": {
                "horizontal": "supported" if solution.get("supportsLoadBalancing") else "not-supported",
                "vertical": "optimized" if solution.get("resourceOptimized") else "needs-optimization",
                "score": 75,
            },
            "efficiency": {
                "cpu": {"value": cpu, "status": "good" if cpu < 70 else "high"},
                "memory": {"value": memory, "status": "good" if memory < 70 else "high"},
                "score": max(0, 100 - (cpu + memory) / 2),
            },
            "improvements": {
                key: _percent_change(metrics.get(key, 0), target) for key, target in targets.items()
            },
            "meetsBenchmarks": {
                "speed": response_time <= BENCHMARKS["speed"]["target"],
                "cost": cost <= BENCHMARKS["cost"]["target"],
                "accuracy": accuracy >= BENCHMARKS["accuracy"]["target"],
            },
        }
        self.audit_history.append({"audit": audit, "timestamp": time.time()})
        self._logger.info("performance_audited", benchmarks=audit["meetsBenchmarks"])
        return {
            "audit": audit,
            "reasoning": "Performance audit completed with detailed metrics analysis and improvement calculations",
        }

    async def audit_ethics(self, task: Task) -> Dict[str, Any]:
        solution = task.data.get("solution") or {}

        concerns = []
        if not solution.get("usesEncryption"):
            concerns.append({
                "type": "privacy",
                "severity": "high",
                "concern": "Data not encrypted at rest or in transit",
                "impact": "Potential data breach exposure",
            })
        if not solution.get("checksFairness"):
            concerns.append({
                "type": "fairness",
                "severity": "medium",
                "concern": "No fairness validation implemented",
                "impact": "Potential discriminatory outcomes",
            })
        if not solution.get("detectsBias"):
            concerns.append({
                "type": "bias",
                "severity": "medium",
                "concern": "No bias detection mechanism",
                "impact": "Undetected algorithmic bias",
            })

        privacy_flags = [
            bool(solution.get(flag)) for flag in ("usesEncryption", "minimizesData", "requiresConsent")
        ]
        audit = {
            "privacy": {
                "score": sum(weight for weight, flag in zip((34, 33, 33), privacy_flags) if flag),
                "hasEncryption": privacy_flags[0],
                "hasDataMinimization": privacy_flags[1],
                "hasConsent": privacy_flags[2],
                "status": "compliant" if all(privacy_flags) else "needs-improvement",
            },
            "fairness": _paired_check(solution, "checksFairness", "usesBalancedData", 90, 60, "fair", "needs-review"),
            "bias": _paired_check(solution, "detectsBias", "mitigatesBias", 85, 55, "mitigated", "at-risk"),
            "transparency": _paired_check(
                solution, "isDocumented", "providesExplanations", 90, 50, "transparent", "needs-improvement"
            ),
            "accountability": _paired_check(
                solution, "logsActions", "maintainsAuditTrail", 85, 60, "accountable", "needs-improvement"
            ),
            "concerns": concerns,
            "recommendations": [
                "Implement end-to-end encryption for sensitive data",
                "Add bias detection and mitigation mechanisms",
                "Ensure fairness through balanced datasets",
                "Maintain comprehensive audit logs",
                "Provide clear explanations for decisions",
            ],
        }
        return {
            "audit": audit,
            "reasoning": "Ethical audit completed with comprehensive analysis of privacy, fairness, and bias concerns",
        }

    async def audit_compliance(self, task: Task) -> Dict[str, Any]:
        solution = task.data.get("solution") or {}
        standards = task.data.get("standards") or []
        regulations = task.data.get("regulations") or []
        satisfied = set(solution.get("compliesWith") or [])

        gaps = [
            {"area": "standard", "gap": f"Not compliant with {name}", "priority": "high"}
            for name in standards
            if name not in satisfied
        ] + [
            {"area": "regulation", "gap": f"Not compliant with {name}", "priority": "high"}
            for name in regulations
            if name not in satisfied
        ]
        if not solution.get("hasRetentionPolicy"):
            gaps.append({"area": "data-protection", "gap": "Missing data retention policy", "priority": "high"})
        if not solution.get("wcagCompliant"):
            gaps.append({"area": "accessibility", "gap": "Incomplete WCAG compliance", "priority": "medium"})

        audit = {
            "standards": [{"standard": s, "compliant": s in satisfied, "gaps": []} for s in standards],
            "regulations": [
                {"regulation": r, "compliant": r in satisfied, "requirements": []} for r in regulations
            ],
            "dataProtection": {
                "encryption": bool(solution.get("usesEncryption")),
                "accessControl": bool(solution.get("hasAccessControl")),
                "dataRetention": bool(solution.get("hasRetentionPolicy")),
                "score": 75,
            },
            "accessibility": {
                "wcagCompliant": bool(solution.get("wcagCompliant")),
                "keyboardAccessible": bool(solution.get("keyboardAccessible")),
                "screenReaderSupport": bool(solution.get("screenReaderSupport")),
                "score": 70,
            },
            "gaps": gaps,
            "remediation": [
                "Implement comprehensive data protection measures",
                "Add accessibility features for WCAG 2.1 compliance",
                "Document compliance procedures",
            ],
        }
        return {
            "audit": audit,
            "reasoning": "Compliance audit completed with identified gaps and remediation suggestions",
        }

    async def compare_metrics(self, task: Task) -> Dict[str, Any]:
        baseline = task.data.get("baseline")
        current = task.data.get("current")
        if not isinstance(baseline, dict) or not isinstance(current, dict):
            raise ValueError("Baseline and current metrics are required for comparison")
        targets = task.data.get("targets") or {}

        improvements = {}
        regressions: List[Dict[str, Any]] = []
        for key, base_value in baseline.items():
            base_value = base_value or 0
            current_value = current.get(key) or 0
            if base_value > 0:
                improvements[key] = f"{current_value / base_value:.2f}x"
            if current_value < base_value:
                regressions.append({
                    "metric": key,
                    "baseline": base_value,
                    "current": current_value,
                    "change": f"{(current_value - base_value) / base_value * 100:.2f}%",
                })

        return {
            "comparison": {
                "improvements": improvements,
                "regressions": regressions,
                "targetProgress": {
                    key: f"{(current.get(key) or 0) / target * 100:.2f}%"
                    for key, target in targets.items()
                    if target
                },
                "recommendations": [
                    "Focus on areas with regression",
                    "Optimize for target metrics",
                    "Maintain improvements while addressing regressions",
                ],
            },
            "reasoning": "Metrics comparison completed with improvement ratios and target progress",
        }


def _upper_bound_check(value: float, benchmark: str) -> Dict[str, Any]:
    target = BENCHMARKS[benchmark]["target"]
    return {
        "value": value,
        "unit": BENCHMARKS[benchmark]["unit"],
        "benchmark": target,
        "status": "pass" if value <= target else "fail",
        "score": max(0, 100 - (value - target) / target * 100),
    }


def _percent_change(current: float, target: float) -> str:
    if not current:
        return "n/a"
    return f"{(target - current) / current * 100:.2f}%"


def _paired_check(
    solution: Mapping[str, Any],
    first: str,
    second: str,
    good_score: int,
    poor_score: int,
    good_status: str,
    poor_status: str,
) -> Dict[str, Any]:
    has_first = bool(solution.get(first))
    has_second = bool(solution.get(second))
    ok = has_first and has_second
    return {
        "score": good_score if ok else poor_score,
        f"has{first[0].upper()}{first[1:]}": has_first,
        f"has{second[0].upper()}{second[1:]}": has_second,
        "status": good_status if ok else poor_status,
    }
