"""Solution development and documentation agent."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping

from multiagent.agents.base import Agent, Handler
from multiagent.core.models import Task, utc_now


class ImplementationTask(str, Enum):
    DESIGN = "design"
    IMPLEMENT = "implement"
    DOCUMENT = "document"
    OPTIMIZE = "optimize"


_EDGE_CASES = [
    {"case": "Empty input", "handling": "Return validation error"},
    {"case": "Service unavailable", "handling": "Retry with exponential backoff"},
    {"case": "Timeout", "handling": "Return timeout error with partial results"},
    {"case": "Invalid format", "handling": "Return format error with details"},
]


class ImplementationAgent(Agent):
    """Turn planned components into designs, implementations and docs."""

    name = "ImplementationAgent"
    role = "Solution Development and Documentation"
    task_kinds = ImplementationTask

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.implementations: Dict[str, Dict[str, Any]] = {}

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            ImplementationTask.DESIGN: self.design_solution,
            ImplementationTask.IMPLEMENT: self.implement_solution,
            ImplementationTask.DOCUMENT: self.document_solution,
            ImplementationTask.OPTIMIZE: self.optimize_solution,
        }

    async def design_solution(self, task: Task) -> Dict[str, Any]:
        component = task.data.get("component")
        requirements = task.data.get("requirements")
        if not isinstance(component, Mapping) or not isinstance(requirements, Mapping):
            raise ValueError("Component and requirements are required for design")

        name = component.get("name", "Component")
        self._logger.info("designing_solution", component=name)
        design = {
            "architecture": {
                "pattern": _select_pattern(requirements),
                "layers": ["presentation", "business logic", "data access", "infrastructure"],
                "services": [
                    {"name": f"{name}Service", "responsibility": "Core business logic"},
                    {"name": f"{name}DataService", "responsibility": "Data operations"},
                ],
                "dataStores": requirements.get("dataStores")
                or ["primary database", "cache", "file storage"],
            },
            "components": [
                {"name": "Controller", "role": "Handle requests"},
                {"name": "Service", "role": "Business logic"},
                {"name": "Repository", "role": "Data access"},
                {"name": "Model", "role": "Data structure"},
            ],
            "interfaces": [
                {"name": f"I{name}Service", "methods": ["process", "validate", "transform"]},
                {"name": f"I{name}Repository", "methods": ["save", "find", "update", "delete"]},
            ],
            "dataFlow": {
                "input": "Request -> Validation -> Processing",
                "processing": "Service -> Repository -> External APIs",
                "output": "Transform -> Format -> Response",
            },
            "assumptions": [
                "Valid input data is provided",
                "Required services are available",
                "Database connections are stable",
                f"{name} follows standard protocols",
            ],
            "edgeCases": [dict(case) for case in _EDGE_CASES],
        }
        return {
            "design": design,
            "reasoning": "Solution designed with clear architecture, components, and data flow",
        }

    async def implement_solution(self, task: Task) -> Dict[str, Any]:
        design = task.data.get("design")
        component = task.data.get("component")
        if not isinstance(design, Mapping) or not isinstance(component, Mapping):
            raise ValueError("Design and component are required for implementation")

        name = component.get("name", "Component")
        self._logger.info("implementing_solution", component=name)
        implementation = {
            "componentName": name,
            "code": {
                "files": [
                    {"path": "service.py", "content": "# Service implementation with business logic"},
                    {"path": "controller.py", "content": "# Controller for handling requests"},
                    {"path": "repository.py", "content": "# Data access layer"},
                    {"path": "model.py", "content": "# Data models and schemas"},
                ],
                "tests": [
                    {"path": "test_service.py", "content": "# Unit tests for service"},
                    {"path": "test_integration.py", "content": "# Integration tests"},
                ],
            },
            "steps": [
                {"step": 1, "action": "Initialize components", "details": "Set up required services and dependencies"},
                {"step": 2, "action": "Validate input", "details": "Check data format and required fields"},
                {"step": 3, "action": "Process data", "details": "Apply business logic and transformations"},
                {"step": 4, "action": "Store results", "details": "Save to database with transaction"},
                {"step": 5, "action": "Return response", "details": "Format and send response to caller"},
            ],
            "logic": {
                "overview": "Solution follows standard request-response pattern with validation",
                "keyDecisions": [
                    "Use async handlers for better throughput",
                    "Implement retry logic for resilience",
                    "Add caching for performance",
                ],
                "tradeoffs": [
                    "Chose simplicity over advanced features for maintainability",
                    "Prioritized reliability over maximum performance",
                ],
            },
            "edgeCaseHandling": [
                {"case": case["case"], "implementation": case["handling"], "tested": True}
                for case in design.get("edgeCases", [])
            ],
            "errorHandling": {
                "strategy": "Fail-fast with detailed error messages",
                "errorTypes": ["ValidationError", "ServiceError", "DataError", "NetworkError"],
                "recovery": "Retry with exponential backoff, fallback to cached data",
                "logging": "All errors logged with context and stack traces",
            },
            "timestamp": utc_now(),
        }
        self.implementations[component.get("id") or name] = implementation
        return {
            "implementation": implementation,
            "reasoning": "Solution implemented with clear steps, logic explanation, and edge case handling",
        }

    async def document_solution(self, task: Task) -> Dict[str, Any]:
        implementation = task.data.get("implementation")
        if not isinstance(implementation, Mapping):
            raise ValueError("Implementation is required for documentation")
        component = task.data.get("component") or {}

        self._logger.info("documenting_solution", component=component.get("name"))
        documentation = {
            "overview": (
                f"{component.get('name', 'Solution')} implementation provides core functionality "
                "with proper error handling and edge case management."
            ),
            "apiDocumentation": [
                {"endpoint": "/api/process", "method": "POST", "description": "Process data"},
                {"endpoint": "/api/status", "method": "GET", "description": "Get status"},
            ],
            "usage": {
                "quickStart": "Import the module and call the main function",
                "configuration": "Set environment variables for connections",
                "examples": "See examples directory for common use cases",
            },
            "examples": [
                {"title": "Basic usage", "code": "result = await service.process(data)"},
                {"title": "With options", "code": "result = await service.process(data, timeout=5)"},
            ],
            "assumptions": implementation.get("assumptions")
            or ["Input is pre-validated", "Environment is configured", "Dependencies are available"],
            "limitations": ["Maximum payload size: 10MB", "Concurrent requests: 100", "Timeout: 30 seconds"],
            "maintenanceNotes": {
                "deployment": "Use CI/CD pipeline for deployment",
                "monitoring": "Monitor error rates and response times",
                "updates": "Review dependencies monthly",
            },
        }
        return {
            "documentation": documentation,
            "reasoning": "Comprehensive documentation created covering all aspects of the solution",
        }

    async def optimize_solution(self, task: Task) -> Dict[str, Any]:
        implementation = task.data.get("implementation")
        if implementation is None:
            raise ValueError("Implementation is required for optimization")

        self._logger.info("optimizing_solution")
        improvements: List[str] = [
            "Add caching for frequently accessed data",
            "Optimize database queries with indexes",
            "Use connection pooling",
        ]
        metrics = task.data.get("metrics") or {}
        if metrics.get("responseTime", 0) > 1000:
            improvements.insert(0, "Profile the request path; response time exceeds 1000ms")
        return {
            "optimizations": {
                "performanceImprovements": improvements,
                "codeQuality": {
                    "refactoring": ["Extract complex functions", "Remove code duplication"],
                    "patterns": ["Apply SOLID principles", "Use dependency injection"],
                    "testing": ["Increase test coverage to 90%", "Add integration tests"],
                },
                "efficiency": {
                    "algorithms": "Use more efficient data structures",
                    "resources": "Reduce memory footprint",
                    "parallelization": "Process independent tasks in parallel",
                },
                "scalability": {
                    "horizontal": "Add load balancing support",
                    "vertical": "Optimize resource usage",
                    "distributed": "Support distributed caching",
                },
                "reasoning": (
                    "Optimizations focus on improving performance while maintaining code "
                    "quality and reliability. Changes are incremental and tested."
                ),
            },
            "reasoning": "Solution optimized for performance, quality, efficiency, and scalability",
        }


def _select_pattern(requirements: Mapping[str, Any]) -> str:
    if requirements.get("distributed"):
        return "microservices"
    if requirements.get("modular"):
        return "layered"
    return "monolithic"
