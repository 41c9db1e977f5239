"""User engagement agent: clarifications, feedback and escalation hand-off."""
from __future__ import annotations

import copy
import time
import uuid
from collections import Counter, deque
from enum import Enum
from typing import Any, Deque, Dict, List, Mapping

from multiagent.agents.base import Agent, Handler
from multiagent.core.models import Task

CLARIFICATION_TEMPLATES = {
    "requirement": "Could you provide more details about {topic}?",
    "constraint": "Are there any constraints regarding {aspect} that we should consider?",
    "priority": "What is the priority level for {item}?",
    "preference": "Do you prefer {option1} or {option2} for {feature}?",
    "validation": "Does this approach meet your expectations: {approach}?",
    "confirmation": "Can you confirm that {statement} is correct?",
}

SUGGESTED_ANSWERS = {
    "priority": ["high", "medium", "low"],
    "preference": ["option A", "option B", "both", "neither"],
    "confirmation": ["yes", "no", "partially"],
}

FEEDBACK_QUESTIONS = {
    "design": [
        "Does this design meet your requirements?",
        "Are there any aspects you would like to change?",
        "Is the approach clear and understandable?",
    ],
    "implementation": [
        "Does this implementation solve your problem?",
        "Are there any issues or concerns?",
        "Would you like any additional features?",
    ],
    "performance": [
        "Is the performance acceptable?",
        "Are there any bottlenecks you've noticed?",
        "What are your performance targets?",
    ],
}

FEEDBACK_FORMATS = {
    "design": "structured",
    "implementation": "freeform",
    "performance": "metrics",
    "general": "rating",
}

OPTIONS = [
    {
        "id": "option-1",
        "name": "Standard Approach",
        "description": "Use established patterns and best practices",
        "pros": ["Reliable", "Well-documented", "Community support"],
        "cons": ["May be slower", "Less flexible"],
    },
    {
        "id": "option-2",
        "name": "Optimized Approach",
        "description": "Focus on performance and efficiency",
        "pros": ["Fast", "Efficient", "Scalable"],
        "cons": ["More complex", "Requires expertise"],
    },
    {
        "id": "option-3",
        "name": "Balanced Approach",
        "description": "Compromise between reliability and performance",
        "pros": ["Good balance", "Maintainable", "Flexible"],
        "cons": ["May not excel in any area"],
    },
]

_PREFERRED_OPTION = {"beginner": "option-1", "expert": "option-2"}


class InteractionTask(str, Enum):
    REQUEST_CLARIFICATION = "request-clarification"
    COLLECT_FEEDBACK = "collect-feedback"
    PERSONALIZE_INTERACTION = "personalize-interaction"
    INTEGRATE_FEEDBACK = "integrate-feedback"
    SUGGEST_OPTIONS = "suggest-options"
    ESCALATION = "escalation"


class UserInteractionAgent(Agent):
    """Ask the user for clarification and fold their feedback back in.

    Also serves as the escalation handler of the standard workflows: an
    ``escalation`` task becomes a prioritized request for operator input.
    """

    name = "UserInteractionAgent"
    role = "User Engagement and Feedback"
    task_kinds = InteractionTask

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.user_context: Dict[str, Dict[str, Any]] = {}
        self.feedback_history: Deque[Dict[str, Any]] = deque(maxlen=100)

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            InteractionTask.REQUEST_CLARIFICATION: self.request_clarification,
            InteractionTask.COLLECT_FEEDBACK: self.collect_feedback,
            InteractionTask.PERSONALIZE_INTERACTION: self.personalize_interaction,
            InteractionTask.INTEGRATE_FEEDBACK: self.integrate_feedback,
            InteractionTask.SUGGEST_OPTIONS: self.suggest_options,
            InteractionTask.ESCALATION: self.handle_escalation,
        }

    def _context_for(self, user_id: Any) -> Dict[str, Any]:
        return self.user_context.setdefault(
            str(user_id),
            {"preferences": {}, "history": [], "goals": [], "expertise": "intermediate"},
        )

    async def request_clarification(self, task: Task) -> Dict[str, Any]:
        ambiguities = task.data.get("ambiguities")
        if not ambiguities:
            raise ValueError("No ambiguities provided for clarification")

        user_ctx = self._context_for(task.data.get("userId"))
        self._logger.info("requesting_clarification", count=len(ambiguities))
        questions = [
            {
                "id": f"clarification-{uuid.uuid4().hex[:8]}-{index}",
                "type": ambiguity.get("type"),
                "question": personalize_question(ambiguity, user_ctx.get("expertise")),
                "priority": ambiguity.get("priority", "medium"),
                "context": ambiguity.get("context", {}),
                "suggestedAnswers": list(SUGGESTED_ANSWERS.get(ambiguity.get("type"), [])),
            }
            for index, ambiguity in enumerate(ambiguities)
        ]
        user_ctx["history"].append({
            "timestamp": time.time(),
            "type": "clarification-request",
            "questions": [q["id"] for q in questions],
        })
        return {
            "questions": questions,
            "reasoning": "Personalized clarification questions generated based on user context and ambiguities",
        }

    async def collect_feedback(self, task: Task) -> Dict[str, Any]:
        feedback_type = task.data.get("feedbackType")
        request = {
            "id": f"feedback-{uuid.uuid4().hex[:8]}",
            "targetItem": task.data.get("targetItem"),
            "type": feedback_type,
            "questions": list(
                FEEDBACK_QUESTIONS.get(
                    feedback_type,
                    ["How well does this meet your expectations?", "What improvements would you suggest?"],
                )
            ),
            "format": FEEDBACK_FORMATS.get(feedback_type, "freeform"),
            "timestamp": time.time(),
        }
        self.feedback_history.append(request)
        return {
            "feedbackRequest": request,
            "reasoning": "Feedback collection structured based on target item and user context",
        }

    async def personalize_interaction(self, task: Task) -> Dict[str, Any]:
        content = task.data.get("content") or ""
        user_ctx = self._context_for(task.data.get("userId"))
        if task.data.get("expertise"):
            user_ctx["expertise"] = task.data["expertise"]
        user_ctx["preferences"].update(task.data.get("preferences") or {})
        expertise = user_ctx.get("expertise", "intermediate")
        preferences = user_ctx.get("preferences", {})

        adapted = simplify_language(content) if expertise == "beginner" else content
        if expertise == "expert" and preferences.get("technical"):
            adapted += "\n\nTechnical details: [Additional context would be provided here]"

        suggestions = []
        if preferences.get("visuals"):
            suggestions.append("Consider adding diagrams or visualizations")
        topics = Counter(item["type"] for item in user_ctx["history"] if item.get("type"))
        if topics:
            suggestions.append(f"Related to your previous work on: {topics.most_common(1)[0][0]}")

        return {
            "personalized": {
                "original": content,
                "adapted": adapted,
                "tone": {
                    "beginner": "friendly and explanatory",
                    "expert": "technical and concise",
                }.get(expertise, "professional and balanced"),
                "detailLevel": "high" if expertise == "beginner" else "medium",
                "suggestions": suggestions,
            },
            "reasoning": "Interaction personalized based on user expertise, preferences, and history",
        }

    async def integrate_feedback(self, task: Task) -> Dict[str, Any]:
        feedback = task.data.get("feedback")
        target = task.data.get("target")
        if not isinstance(feedback, list) or not isinstance(target, Mapping):
            raise ValueError("Feedback and target are required for integration")

        refined = dict(copy.deepcopy(target))
        for item in feedback:
            if item.get("field") and "newValue" in item:
                refined[item["field"]] = item["newValue"]
            elif item.get("changes"):
                refined.update(item["changes"])

        return {
            "integration": {
                "originalTarget": target,
                "refinedTarget": refined,
                "feedbackApplied": [
                    {"type": item.get("type"), "content": item.get("content"), "impact": item.get("impact", "medium")}
                    for item in feedback
                    if item.get("applied") is not False
                ],
                "changes": [
                    {
                        "field": item.get("field") or "multiple",
                        "oldValue": target.get(item["field"]) if item.get("field") else "various",
                        "newValue": item.get("newValue", item.get("changes")),
                        "reason": item.get("reason", "User feedback"),
                    }
                    for item in feedback
                ],
                "validation": {
                    "allApplied": all(item.get("applied") is not False for item in feedback),
                    "conflicts": [],
                    "warnings": [],
                },
            },
            "reasoning": "Feedback integrated with documented changes and validation",
        }

    async def suggest_options(self, task: Task) -> Dict[str, Any]:
        decision = task.data.get("decision")
        if not decision:
            raise ValueError("Decision context is required for suggestions")

        expertise = self._context_for(task.data.get("userId")).get("expertise", "intermediate")
        preferred = _PREFERRED_OPTION.get(expertise)
        ranked = sorted(copy.deepcopy(OPTIONS), key=lambda option: option["id"] != preferred)
        best = ranked[0]
        return {
            "suggestion": {
                "decision": decision,
                "options": ranked,
                "recommendation": best,
                "reasoning": (
                    f"Based on your expertise level ({expertise}), {best['name']} is "
                    f"recommended because {best['pros'][0].lower()}."
                ),
                "tradeoffs": [
                    {"option": o["name"], "mainBenefit": o["pros"][0], "mainDrawback": o["cons"][0]}
                    for o in ranked
                ],
            },
            "reasoning": "Options generated and ranked based on user context and preferences",
        }

    async def handle_escalation(self, task: Task) -> Dict[str, Any]:
        workflow = task.data.get("workflow")
        failed_step = task.data.get("failedStep")
        error = task.data.get("error") or {}
        previous = task.data.get("previousResults") or []

        self._logger.warning("escalation_received", workflow=workflow, failed_step=failed_step)
        return {
            "escalation": {
                "workflow": workflow,
                "failedStep": failed_step,
                "reason": error.get("error") or "Step reported failure",
                "completedSteps": completed_steps(previous),
                "questions": [
                    {
                        "id": f"escalation-{uuid.uuid4().hex[:8]}",
                        "type": "confirmation",
                        "question": (
                            f"Step '{failed_step}' of workflow '{workflow}' failed. "
                            "Should it be retried with adjusted input?"
                        ),
                        "priority": "high",
                        "suggestedAnswers": list(SUGGESTED_ANSWERS["confirmation"]),
                    }
                ],
            },
            "reasoning": "Failure handed to the user with context from completed steps",
        }


def personalize_question(ambiguity: Mapping[str, Any], expertise: Any) -> str:
    question = CLARIFICATION_TEMPLATES.get(ambiguity.get("type"), CLARIFICATION_TEMPLATES["requirement"])
    for key, value in ambiguity.items():
        question = question.replace(f"{{{key}}}", str(value))
    if expertise == "beginner":
        question = simplify_language(question)
    elif expertise == "expert":
        question += " (considering performance implications and scalability)"
    return question


def simplify_language(text: str) -> str:
    return text.replace("utilize", "use").replace("implement", "build").replace("optimize", "improve")


def completed_steps(previous: List[Dict[str, Any]]) -> List[str]:
    return [r.get("step") for r in previous if (r.get("result") or {}).get("success")]
