"""Planning and information-gathering agent."""
from __future__ import annotations

import re
import time
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from multiagent.agents.base import Agent, Handler
from multiagent.core.models import Task

_COMPLEX_KEYWORDS = ("complex", "multiple", "various", "integrate", "coordinate")
_VAGUE_WORDS = ("something", "maybe", "kind of", "sort of", "somehow")
_CACHE_TTL_SECONDS = 3600


class ResearchTask(str, Enum):
    DECOMPOSE = "decompose"
    PLAN = "plan"
    RESEARCH = "research"
    CLARIFY = "clarify"


class ResearchAgent(Agent):
    """Decompose problems, plan solutions and flag what needs clarifying."""

    name = "ResearchAgent"
    role = "Planning and Information Gathering"
    task_kinds = ResearchTask

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._knowledge: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            ResearchTask.DECOMPOSE: self.decompose_problem,
            ResearchTask.PLAN: self.create_plan,
            ResearchTask.RESEARCH: self.gather_information,
            ResearchTask.CLARIFY: self.identify_clarifications,
        }

    async def decompose_problem(self, task: Task) -> Dict[str, Any]:
        problem = task.data.get("problem")
        if not isinstance(problem, str) or not problem:
            raise ValueError("Invalid problem description")

        self._logger.info("decomposing_problem", problem=problem[:100])
        components = _identify_components(problem)
        return {
            "complexity": _assess_complexity(problem),
            "components": components,
            "dependencies": [
                {
                    "component": component["id"],
                    "dependsOn": [components[index - 1]["id"]] if index else [],
                }
                for index, component in enumerate(components)
            ],
            "reasoning": "Problem decomposed into manageable components with clear dependencies",
        }

    async def create_plan(self, task: Task) -> Dict[str, Any]:
        components = task.data.get("components")
        if not isinstance(components, list):
            raise ValueError("Components must be an array")
        constraints = task.data.get("constraints") or {}

        self._logger.info("creating_plan", component_count=len(components))
        phases = []
        for index, component in enumerate(components, start=1):
            name = component.get("name") or f"Phase {index}"
            phases.append(
                {
                    "id": f"phase-{index}",
                    "name": name,
                    "description": component.get("description", ""),
                    "tasks": [
                        {"id": 1, "name": f"Analyze {name}", "status": "pending"},
                        {"id": 2, "name": f"Implement {name}", "status": "pending"},
                        {"id": 3, "name": f"Verify {name}", "status": "pending"},
                    ],
                    "dependencies": component.get("dependencies", []),
                    "estimatedTime": _estimate_time(component),
                }
            )

        resources = ["Development environment", "Testing framework", "Documentation tools"]
        if len(components) > 5:
            resources += ["Additional team members", "Project management tools"]

        risks = []
        if len(components) > 10:
            risks.append(
                {
                    "type": "complexity",
                    "description": "High number of components may increase integration challenges",
                    "severity": "medium",
                }
            )
        time_limit = constraints.get("timeLimit")
        if time_limit and time_limit < 30:
            risks.append(
                {
                    "type": "timeline",
                    "description": "Tight timeline may impact quality",
                    "severity": "high",
                }
            )

        return {
            "plan": {
                "phases": phases,
                "estimatedDuration": sum(phase["estimatedTime"] for phase in phases),
                "requiredResources": resources,
                "risks": risks,
            },
            "reasoning": "Comprehensive plan created with phases, tasks, and risk assessment",
        }

    async def gather_information(self, task: Task) -> Dict[str, Any]:
        topic = task.data.get("topic")
        if not topic:
            raise ValueError("Topic is required for research")
        scope = task.data.get("scope", "general")

        cached = self._knowledge.get(topic)
        if cached and time.monotonic() - cached[0] < _CACHE_TTL_SECONDS:
            self._logger.info("using_cached_knowledge", topic=topic)
            return cached[1]

        self._logger.info("gathering_information", topic=topic, scope=scope)
        result = {
            "information": {
                "topic": topic,
                "scope": scope,
                "keyPoints": [
                    f"Key aspect of {topic}",
                    f"Important consideration for {topic}",
                    f"Best approach to {topic}",
                ],
                "resources": ["Technical documentation", "Development tools", "Testing infrastructure"],
                "technicalRequirements": [
                    "Programming language/framework",
                    "Database/storage",
                    "API integrations",
                ],
                "bestPractices": [
                    "Follow industry standards",
                    "Implement proper error handling",
                    "Include comprehensive testing",
                ],
            },
            "reasoning": "Information gathered from knowledge base and analysis",
        }
        self._knowledge[topic] = (time.monotonic(), result)
        return result

    async def identify_clarifications(self, task: Task) -> Dict[str, Any]:
        problem = task.data.get("problem") or ""
        plan = task.data.get("plan")

        clarifications = []
        lowered = problem.lower()
        if any(word in lowered for word in _VAGUE_WORDS):
            clarifications.append(
                {
                    "type": "requirement",
                    "question": "Could you provide more specific requirements for the expected outcome?",
                    "priority": "high",
                }
            )
        if not plan or not plan.get("constraints"):
            clarifications.append(
                {
                    "type": "constraint",
                    "question": "Are there any constraints (time, budget, technical) we should be aware of?",
                    "priority": "medium",
                }
            )
        if len(problem) < 50 or ("should" not in problem and "must" not in problem):
            clarifications.append(
                {
                    "type": "scope",
                    "question": "Could you clarify the scope and boundaries of this problem?",
                    "priority": "high",
                }
            )

        return {
            "clarifications": clarifications,
            "reasoning": "Identified areas requiring user clarification for successful execution",
        }


def _assess_complexity(problem: str) -> Dict[str, Any]:
    lowered = problem.lower()
    if len(problem) > 500 or any(keyword in lowered for keyword in _COMPLEX_KEYWORDS):
        return {"level": "high", "score": 8}
    if len(problem) > 200:
        return {"level": "medium", "score": 5}
    return {"level": "low", "score": 3}


def _identify_components(problem: str) -> List[Dict[str, Any]]:
    components = []
    sentences = [s.strip() for s in re.split(r"[.!?]+", problem) if s.strip()]
    for index, sentence in enumerate(sentences, start=1):
        if len(sentence) > 10:
            components.append(
                {
                    "id": f"component-{index}",
                    "name": sentence[:50],
                    "description": sentence,
                    "priority": "high" if index == 1 else "medium",
                }
            )
    return components


def _estimate_time(component: Mapping[str, Any]) -> int:
    # 2-7 time units, scaled by how much the component describes
    words = len(str(component.get("description", "")).split())
    return min(7, 2 + words // 5)
