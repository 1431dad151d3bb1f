import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

import larder.persistence as persistence
from larder.ai import AIClient
from larder.config import LarderConfig
from larder.contracts import EntityKind, Scope, StepName, StepStatus
from larder.orchestrator import create_orchestrator
from larder.persistence import SQLiteRecordStore


class DummyAgent:
    async def run(self, prompt: str):
        if "Classify this ingredient" in prompt:
            return SimpleNamespace(output="fruit")
        if "Complete the missing details" in prompt:
            return SimpleNamespace(output=json.dumps({"calories": 89, "alt": ["plantain"]}))
        return SimpleNamespace(output="banana")


@pytest.mark.asyncio
async def test_scoped_workflow_against_sqlite(tmp_path):
    persistence._record_store_instance = None
    config = LarderConfig(
        state_dir=str(tmp_path / "data"),
        database_url=f"sqlite://{tmp_path / 'larder.db'}",
    )
    orchestrator = create_orchestrator(config, ai=AIClient(agent=DummyAgent(), pacing_delay_s=0))
    records = orchestrator.analysis.records
    assert isinstance(records, SQLiteRecordStore)

    now = datetime.now(timezone.utc)
    await records.insert(EntityKind.INGREDIENTS, {"id": "new", "createdAt": now})
    await records.insert(
        EntityKind.INGREDIENTS, {"id": "old", "createdAt": now - timedelta(days=60)}
    )

    execution = await orchestrator.execute_complete_workflow(Scope.LAST_30_DAYS)

    assert execution.summary.completed_steps == 6
    analysis = execution.step(StepName.DATA_ANALYSIS).result
    assert analysis["ingredients"]["total"] == 1
    assert analysis["ingredients"]["needsTypeUpdate"] == ["new"]
    assert execution.step(StepName.TITLE_ADDITION).result["ingredients"]["success"] == 1

    new = await records.get(EntityKind.INGREDIENTS, "new")
    assert new["title"] == "banana"
    assert new["calories"] == 89
    assert "title" not in await records.get(EntityKind.INGREDIENTS, "old")
    assert all(s.status is StepStatus.COMPLETED for s in execution.steps)

    # enhancement touched "old", so it is inside the window now
    types = await orchestrator.ingredients.update_types(scope=Scope.LAST_30_DAYS)
    assert [r.id for r in types.results] == ["new", "old"]
    assert types.success == 2
    state = orchestrator.analysis.get_workflow_state()
    assert state.completed.ingredients == ["new"]
    assert state.pending_transformations.ingredients == []
    persistence._record_store_instance = None
