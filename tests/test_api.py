"""HTTP-level tests for the FastAPI application."""
from __future__ import annotations

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from multiagent.agents.research import ResearchAgent
from multiagent.api.rate_limit import InMemoryRateLimiter
from multiagent.config import Config, RateLimitConfig
from multiagent.main import create_app
from multiagent.runtime import build_orchestrator

UNLIMITED = RateLimitConfig(enabled=False)

DECOMPOSE_TASK = {
    "type": "decompose",
    "data": {"problem": "Build a REST API for managing customer orders. It must support authentication."},
}


async def no_sleep(seconds: float) -> None:
    return None


def make_client(config: Config = None, **orchestrator_options: Any) -> TestClient:
    config = config or Config(rate_limit=UNLIMITED)
    orchestrator_options.setdefault("sleep", no_sleep)
    orchestrator = build_orchestrator(config, **orchestrator_options)
    return TestClient(create_app(config, orchestrator=orchestrator))


@pytest.fixture
def client() -> TestClient:
    with make_client() as test_client:
        yield test_client


def test_status_reports_registries(client: TestClient) -> None:
    response = client.get("/status")

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "multi-agent-system"
    assert body["status"] == "operational"
    assert body["registeredAgents"] == 7
    assert body["registeredWorkflows"] == 3
    assert body["activeExecutions"] == 0
    assert body["maxConcurrent"] == 10
    assert "timestamp" in body


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.json() == {"status": "ok"}
    assert response.headers["x-request-id"]


def test_list_agents(client: TestClient) -> None:
    body = client.get("/agents").json()

    assert body["count"] == 7
    names: List[str] = [agent["name"] for agent in body["agents"]]
    assert "ResearchAgent" in names and "UserInteractionAgent" in names
    assert all(agent["state"] == "idle" for agent in body["agents"])


def test_list_workflows(client: TestClient) -> None:
    body = client.get("/workflows").json()

    assert body == {
        "workflows": ["complete-solution", "iterative-refinement", "quality-assurance"],
        "count": 3,
    }


def test_agent_status(client: TestClient) -> None:
    response = client.get("/agent/ResearchAgent/status")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "ResearchAgent"
    assert body["role"] == "Planning and Information Gathering"
    assert body["metrics"] == {"tasksProcessed": 0, "errors": 0, "averageProcessingTime": 0.0}


def test_agent_status_unknown_agent(client: TestClient) -> None:
    response = client.get("/agent/Ghost/status")

    assert response.status_code == 404
    assert response.json() == {"error": "Agent not found: Ghost"}


def test_execute_agent(client: TestClient) -> None:
    response = client.post("/agent/execute", json={"agentName": "ResearchAgent", "task": DECOMPOSE_TASK})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["agent"] == "ResearchAgent"
    assert len(body["result"]["data"]["components"]) == 2
    assert client.get("/agent/ResearchAgent/status").json()["historySize"] == 1


def test_execute_agent_reports_handler_failure(client: TestClient) -> None:
    response = client.post(
        "/agent/execute", json={"agentName": "ResearchAgent", "task": {"type": "fly", "data": {}}}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["result"]["error"] == "Unknown task type: fly"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"task": DECOMPOSE_TASK}, "Agent name is required"),
        ({"agentName": "", "task": DECOMPOSE_TASK}, "Agent name is required"),
        ({"agentName": "ResearchAgent"}, "Task object is required"),
        ({"agentName": "ResearchAgent", "task": "decompose"}, "Task object is required"),
        ({"agentName": "ResearchAgent", "task": {"data": {}}}, "Invalid task: missing type field"),
        ({"agentName": "ResearchAgent", "task": {"type": "decompose"}}, "Invalid task: missing data field"),
        (
            {"agentName": "ResearchAgent", "task": {"type": "decompose", "data": "text"}},
            "Invalid task: data must be an object",
        ),
        (
            {"agentName": "ResearchAgent", "task": {"type": "decompose", "data": [1, 2]}},
            "Invalid task: data must be an object",
        ),
    ],
)
def test_execute_agent_rejects_bad_requests(client: TestClient, payload: Dict[str, Any], message: str) -> None:
    response = client.post("/agent/execute", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_execute_agent_rejects_malformed_json(client: TestClient) -> None:
    response = client.post(
        "/agent/execute", content=b"{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Request body must be valid JSON"}


def test_execute_unknown_agent(client: TestClient) -> None:
    response = client.post("/agent/execute", json={"agentName": "Ghost", "task": DECOMPOSE_TASK})

    assert response.status_code == 404
    assert response.json() == {"error": "Agent not found: Ghost"}


def test_execute_workflow_escalates_on_verification_failure(client: TestClient) -> None:
    response = client.post(
        "/workflow/execute", json={"workflowName": "complete-solution", "task": DECOMPOSE_TASK}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["workflow"] == "complete-solution"
    result = body["result"]
    assert result["success"] is False
    assert result["escalated"] is True
    assert result["failedStep"] == "verify-design"
    assert [r["step"] for r in result["previousResults"]] == [
        "research-and-plan",
        "design-solution",
        "verify-design",
    ]
    assert result["escalationResult"]["success"] is True
    assert result["escalationResult"]["data"]["escalation"]["completedSteps"] == ["research-and-plan"]
    assert client.get("/status").json()["activeExecutions"] == 0


def test_execute_workflow_validation(client: TestClient) -> None:
    missing_name = client.post("/workflow/execute", json={"task": DECOMPOSE_TASK})
    missing_task = client.post("/workflow/execute", json={"workflowName": "complete-solution"})
    bad_task = client.post(
        "/workflow/execute", json={"workflowName": "complete-solution", "task": {"data": {}}}
    )

    assert missing_name.status_code == 400
    assert missing_name.json() == {"error": "Workflow name is required"}
    assert missing_task.json() == {"error": "Task object is required"}
    assert bad_task.status_code == 400


def test_execute_unknown_workflow(client: TestClient) -> None:
    response = client.post("/workflow/execute", json={"workflowName": "nope", "task": DECOMPOSE_TASK})

    assert response.status_code == 404
    assert response.json() == {"error": "Workflow not found: nope"}


def test_execute_workflow_over_capacity() -> None:
    with make_client(max_concurrent=0) as client:
        response = client.post(
            "/workflow/execute", json={"workflowName": "complete-solution", "task": DECOMPOSE_TASK}
        )

    assert response.status_code == 503
    assert "Maximum concurrent workflows" in response.json()["error"]


class ExplodingResearchAgent(ResearchAgent):
    name = "Exploder"

    async def process(self, task):
        raise RuntimeError("secret internals")


@pytest.mark.parametrize("environment, message", [("production", "Internal server error"), ("development", "secret internals")])
def test_unhandled_errors_hide_details_in_production(environment: str, message: str) -> None:
    config = Config(environment=environment, rate_limit=UNLIMITED)
    orchestrator = build_orchestrator(config)
    orchestrator.register_agent(ExplodingResearchAgent())
    app = create_app(config, orchestrator=orchestrator)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.post("/agent/execute", json={"agentName": "Exploder", "task": DECOMPOSE_TASK})

    assert response.status_code == 500
    assert response.json() == {"error": message}


def test_cors_allows_configured_origin(client: TestClient) -> None:
    response = client.get("/status", headers={"Origin": "http://localhost:3000"})

    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_rate_limit_rejects_excess_requests() -> None:
    config = Config(rate_limit=RateLimitConfig(enabled=True, max_requests=2, window_seconds=60))

    with make_client(config) as client:
        first = client.get("/agents")
        second = client.get("/agents")
        third = client.get("/agents")
        health = client.get("/health")

    assert first.headers["RateLimit-Remaining"] == "1"
    assert second.status_code == 200
    assert third.status_code == 429
    assert third.json() == {"error": "Too many requests, please try again later"}
    assert third.headers["RateLimit-Limit"] == "2"
    assert health.status_code == 200


def test_unknown_route_uses_error_body(client: TestClient) -> None:
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_wrong_method_uses_error_body(client: TestClient) -> None:
    response = client.post("/agents", json={})

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}
    assert "GET" in response.headers["allow"]


def test_responses_carry_security_headers(client: TestClient) -> None:
    health = client.get("/health")
    missing = client.get("/nope")

    for response in (health, missing):
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "SAMEORIGIN"
        assert response.headers["referrer-policy"] == "no-referrer"
        assert response.headers["strict-transport-security"].startswith("max-age=15552000")


def test_oversized_body_is_rejected(client: TestClient) -> None:
    body = b'{"agentName": "ResearchAgent", "padding": "' + b"x" * (1024 * 1024) + b'"}'

    response = client.post(
        "/agent/execute", content=body, headers={"content-type": "application/json"}
    )

    assert response.status_code == 413
    assert response.json() == {"error": "Request body too large"}
    assert response.headers["x-content-type-options"] == "nosniff"


def test_streamed_body_over_limit_is_rejected() -> None:
    config = Config(rate_limit=UNLIMITED, max_body_bytes=256)
    chunks = [b'{"agentName": "ResearchAgent", "padding": "', b"x" * 512, b'"}']

    with make_client(config) as client:
        response = client.post(
            "/agent/execute", content=iter(chunks), headers={"content-type": "application/json"}
        )

    assert response.status_code == 413
    assert response.json() == {"error": "Request body too large"}


def test_body_within_limit_is_accepted() -> None:
    config = Config(rate_limit=UNLIMITED, max_body_bytes=4096)

    with make_client(config) as client:
        response = client.post("/agent/execute", json={"agentName": "ResearchAgent", "task": DECOMPOSE_TASK})

    assert response.status_code == 200


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_rate_limiter_forgets_idle_clients() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)

    for index in range(50):
        assert limiter.is_allowed(f"10.0.0.{index}", limit=5, window_seconds=60)[0] is True
    assert len(limiter.requests) == 50

    clock.now += 61
    allowed, remaining, _ = limiter.is_allowed("10.0.1.1", limit=5, window_seconds=60)

    assert allowed is True
    assert remaining == 4
    assert list(limiter.requests) == ["10.0.1.1"]


def test_rate_limiter_keeps_clients_active_in_window() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    limiter.is_allowed("old", limit=5, window_seconds=60)
    clock.now += 30
    limiter.is_allowed("recent", limit=5, window_seconds=60)

    clock.now += 40
    limiter.is_allowed("new", limit=5, window_seconds=60)

    assert set(limiter.requests) == {"recent", "new"}
    assert limiter.requests["recent"] == [1030.0]
