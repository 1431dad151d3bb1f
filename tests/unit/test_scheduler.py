import pytest

from larder.contracts import Scope, WorkflowExecution
from larder.scheduler import WeeklyScheduler


class DummyOrchestrator:
    def __init__(self, fail_first: bool = False):
        self.calls = []
        self.fail_first = fail_first

    async def execute_complete_workflow(self, scope):
        self.calls.append(scope)
        if self.fail_first and len(self.calls) == 1:
            raise RuntimeError("boom")
        return WorkflowExecution(id=f"workflow-{len(self.calls)}", scope=scope)


@pytest.mark.asyncio
async def test_run_once_uses_fixed_scope():
    orchestrator = DummyOrchestrator()
    scheduler = WeeklyScheduler(orchestrator, scope=Scope.LAST_7_DAYS)

    execution = await scheduler.run_once()

    assert execution.id == "workflow-1"
    assert orchestrator.calls == [Scope.LAST_7_DAYS]
    assert scheduler.interval == 7 * 24 * 3600


@pytest.mark.asyncio
async def test_start_keeps_running_after_a_failed_run():
    orchestrator = DummyOrchestrator(fail_first=True)
    scheduler = WeeklyScheduler(orchestrator, scope="all", interval=0.05)

    await scheduler.start(lifespan=0.3)

    assert len(orchestrator.calls) >= 3
    assert scheduler.executions[0].id == "workflow-2"
    assert all(e.scope is Scope.ALL for e in scheduler.executions)
