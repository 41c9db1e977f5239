"""CLI demonstration of a workflow run without the HTTP server."""
from __future__ import annotations

import asyncio
import json

from multiagent.config import Config
from multiagent.core.logging import configure_logging
from multiagent.core.models import EscalationResult
from multiagent.runtime import build_orchestrator

DEMO_TASK = {
    "type": "decompose",
    "data": {
        "problem": (
            "Build a REST API for managing customer orders. "
            "It must support authentication and export reports as CSV."
        )
    },
}


async def main() -> None:
    orchestrator = build_orchestrator(Config.from_env())

    research = orchestrator.get_agent("ResearchAgent")
    result = await research.process(DEMO_TASK)
    components = result.data["components"] if result.success else []
    print(f"ResearchAgent found {len(components)} component(s)")

    outcome = await orchestrator.execute_workflow("complete-solution", DEMO_TASK)
    escalated = isinstance(outcome, EscalationResult)
    for record in outcome.previous_results if escalated else outcome.results:
        status = "ok" if record.result.success else f"failed ({record.result.error})"
        print(f"  {record.step:<24} {record.agent:<22} {status}")

    if escalated:
        print(f"Escalated at step {outcome.failed_step}")
        if outcome.escalation_result is not None:
            print(json.dumps(outcome.escalation_result.data, indent=2))
    else:
        print(f"Workflow finished in {outcome.duration:.1f} ms")

    print(json.dumps(orchestrator.get_status(), indent=2))


def run() -> None:
    configure_logging(Config.from_env())
    asyncio.run(main())


if __name__ == "__main__":
    run()
