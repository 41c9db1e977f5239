"""Anomaly detection and self-correction agent."""
from __future__ import annotations

import math
import re
import time
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, List, Mapping

from multiagent.agents.base import Agent, Handler
from multiagent.core.models import Task

THRESHOLDS = {"responseTime": 5000, "errorRate": 0.05, "cpuUsage": 80, "memoryUsage": 80}

RECOVERY_STRATEGIES: Dict[str, Dict[str, Any]] = {
    "timeout": {"action": "retry", "maxAttempts": 3, "backoff": True},
    "validation-error": {"action": "fallback", "useDefault": True},
    "logic-error": {"action": "escalate", "notify": True},
    "performance-degradation": {"action": "optimize", "cache": True},
}

RECOVERY_STEPS: Dict[str, List[Dict[str, str]]] = {
    "retry": [
        {"action": "retry-attempt-1", "status": "pending"},
        {"action": "retry-attempt-2", "status": "pending"},
        {"action": "retry-attempt-3", "status": "pending"},
    ],
    "fallback": [
        {"action": "use-cached-data", "status": "executed"},
        {"action": "return-default-value", "status": "executed"},
    ],
    "escalate": [
        {"action": "notify-operator", "status": "executed"},
        {"action": "log-for-review", "status": "executed"},
        {"action": "pause-processing", "status": "pending"},
    ],
    "optimize": [
        {"action": "enable-caching", "status": "executed"},
        {"action": "optimize-queries", "status": "pending"},
        {"action": "increase-resources", "status": "pending"},
    ],
    "log": [{"action": "log", "message": "Anomaly logged for review"}],
}

_SEVERITY_ORDER = ("critical", "high", "medium")


class AnomalyTask(str, Enum):
    DETECT_ANOMALIES = "detect-anomalies"
    ANALYZE_OUTPUT = "analyze-output"
    CHECK_REASONING = "check-reasoning"
    RECOVER = "recover"


class AnomalyDetectionAgent(Agent):
    """Scan workflow output for anomalies and pick recovery strategies."""

    name = "AnomalyDetectionAgent"
    role = "Anomaly Detection and Self-Correction"
    task_kinds = AnomalyTask

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.anomaly_history: Deque[Dict[str, Any]] = deque(maxlen=1000)

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            AnomalyTask.DETECT_ANOMALIES: self.detect_anomalies,
            AnomalyTask.ANALYZE_OUTPUT: self.analyze_output,
            AnomalyTask.CHECK_REASONING: self.check_reasoning,
            AnomalyTask.RECOVER: self.execute_recovery,
        }

    async def detect_anomalies(self, task: Task) -> Dict[str, Any]:
        results = task.data.get("workflowResults")
        metrics = task.data.get("metrics") or {}

        anomalies = _performance_anomalies(metrics)
        if results is not None:
            anomalies += _output_anomalies(results)
        anomalies += self._pattern_anomalies(len(anomalies))

        self.anomaly_history.append(
            {"timestamp": time.time(), "anomalies": anomalies, "metrics": metrics}
        )
        self._logger.info("anomalies_detected", count=len(anomalies))
        return {
            "anomaliesDetected": len(anomalies),
            "anomalies": anomalies,
            "severity": overall_severity(anomalies),
            "recoveryRequired": any(a["severity"] in ("critical", "high") for a in anomalies),
            "reasoning": "Anomalies detected through performance, output, and pattern analysis",
        }

    async def analyze_output(self, task: Task) -> Dict[str, Any]:
        output = task.data.get("output")
        expected = task.data.get("expectedFormat") or {}
        context = task.data.get("context") or {}

        is_valid = _matches_format(output, expected)
        is_logical = isinstance(output, dict) and not (
            "success" in output and "data" not in output and "error" not in output
        )
        required = context.get("requiredFields") or []
        is_complete = isinstance(output, dict) and all(field in output for field in required)
        unexpected = isinstance(output, dict) and any(
            value is None or (isinstance(value, float) and (math.isnan(value) or math.isinf(value)))
            for value in output.values()
        )

        issues = []
        if not is_valid:
            issues.append({"type": "validation", "message": "Output format invalid"})
        if not is_logical:
            issues.append({"type": "logic", "message": "Output contains logical inconsistencies"})
        if not is_complete:
            issues.append({"type": "completeness", "message": "Output is incomplete"})

        return {
            "analysis": {
                "isValid": is_valid,
                "isLogical": is_logical,
                "isComplete": is_complete,
                "hasUnexpectedValues": unexpected,
                "issues": issues,
            },
            "anomalyDetected": bool(issues),
            "reasoning": "Output analyzed for validity, logic, completeness, and unexpected values",
        }

    async def check_reasoning(self, task: Task) -> Dict[str, Any]:
        reasoning = task.data.get("reasoning")
        text = reasoning.lower() if isinstance(reasoning, str) else ""

        checks = {
            "hasLogicalFlows": bool(text)
            and len(text) > 20
            and any(marker in text for marker in ("step", "then", "because")),
            "hasValidAssumptions": not any(
                phrase in text for phrase in ("always works", "never fails", "perfect", "impossible to")
            ),
            "hasCompleteness": len(text) > 50,
            "hasCircularLogic": any(
                phrase in text for phrase in ("because it is", "since it does", "as it is")
            ),
            "hasContradictions": bool(re.search(r"should|must|will|can", text))
            and bool(re.search(r"should not|must not|will not|cannot", text))
            and len(text) < 200,
        }

        failures = []
        if not checks["hasLogicalFlows"]:
            failures.append({"type": "logic-flow", "severity": "high", "message": "Reasoning lacks logical flow"})
        if checks["hasCircularLogic"]:
            failures.append({"type": "circular-logic", "severity": "medium", "message": "Circular reasoning detected"})
        if checks["hasContradictions"]:
            failures.append({"type": "contradiction", "severity": "high", "message": "Contradictions found in reasoning"})

        return {
            "checks": checks,
            "failures": failures,
            "reasoningValid": not failures,
            "reasoning": "Reasoning checked for logical flows, assumptions, and contradictions",
        }

    async def execute_recovery(self, task: Task) -> Dict[str, Any]:
        anomaly = task.data.get("anomaly")
        if not isinstance(anomaly, dict) or not anomaly.get("type"):
            raise ValueError("Invalid anomaly data for recovery")

        strategy = RECOVERY_STRATEGIES.get(anomaly["type"], {"action": "log"})
        action = strategy["action"]
        log = self._logger.warning if action == "escalate" else self._logger.info
        log("executing_recovery", anomaly=anomaly["type"], strategy=action)
        return {
            "recovery": {
                "anomalyType": anomaly["type"],
                "strategy": action,
                "steps": [dict(step) for step in RECOVERY_STEPS[action]],
            },
            "reasoning": f"Recovery executed using {action} strategy",
        }

    def _pattern_anomalies(self, current_count: int) -> List[Dict[str, Any]]:
        if len(self.anomaly_history) < 5:
            return []
        recent = list(self.anomaly_history)[-10:]
        average = sum(len(entry["anomalies"]) for entry in recent) / len(recent)
        if current_count > average * 2:
            return [{
                "type": "anomaly-spike",
                "category": "pattern",
                "severity": "medium",
                "message": f"Unusual increase in anomalies: {current_count} vs average {average:.2f}",
            }]
        return []


def overall_severity(anomalies: List[Dict[str, Any]]) -> str:
    for severity in _SEVERITY_ORDER:
        if any(a["severity"] == severity for a in anomalies):
            return severity
    return "low"


def _performance_anomalies(metrics: Mapping[str, Any]) -> List[Dict[str, Any]]:
    anomalies = []
    response_time = metrics.get("responseTime", 0)
    if response_time > THRESHOLDS["responseTime"]:
        anomalies.append({
            "type": "performance-degradation",
            "category": "latency",
            "severity": "high",
            "message": f"Response time {response_time}ms exceeds threshold {THRESHOLDS['responseTime']}ms",
            "value": response_time,
        })
    error_rate = metrics.get("errorRate", 0)
    if error_rate > THRESHOLDS["errorRate"]:
        anomalies.append({
            "type": "high-error-rate",
            "category": "reliability",
            "severity": "critical",
            "message": (
                f"Error rate {error_rate * 100:.2f}% exceeds threshold "
                f"{THRESHOLDS['errorRate'] * 100:.2f}%"
            ),
            "value": error_rate,
        })
    cpu = metrics.get("cpuUsage", 0)
    if cpu > THRESHOLDS["cpuUsage"]:
        anomalies.append({
            "type": "resource-exhaustion",
            "category": "cpu",
            "severity": "medium",
            "message": f"CPU usage {cpu}% exceeds threshold {THRESHOLDS['cpuUsage']}%",
            "value": cpu,
        })
    return anomalies


def _output_anomalies(results: Any) -> List[Dict[str, Any]]:
    if not isinstance(results, list):
        return [{
            "type": "invalid-output",
            "category": "format",
            "severity": "critical",
            "message": "Output is not in expected array format",
        }]

    anomalies = []
    if not results:
        anomalies.append({
            "type": "empty-output",
            "category": "data",
            "severity": "medium",
            "message": "No results produced",
        })
    failed = [r for r in results if not (r.get("result") or {}).get("success")]
    if failed:
        anomalies.append({
            "type": "failed-steps",
            "category": "execution",
            "severity": "high",
            "message": f"{len(failed)} step(s) failed",
            "details": [r.get("step") for r in failed],
        })
    return anomalies


def _matches_format(output: Any, expected: Mapping[str, Any]) -> bool:
    kind = expected.get("type")
    if kind == "object":
        return isinstance(output, dict)
    if kind == "array":
        return isinstance(output, list)
    return True
