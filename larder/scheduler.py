"""Periodic trigger for the full workflow."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .constants import DEFAULT_SCHEDULE_INTERVAL_DAYS
from .contracts import Scope, WorkflowExecution
from .orchestrator import WorkflowOrchestrator

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 3600


class WeeklyScheduler:
    """Invoke the complete workflow with a fixed scope on a fixed cadence."""

    def __init__(
        self,
        orchestrator: WorkflowOrchestrator,
        scope: Scope = Scope.ALL,
        interval: float = DEFAULT_SCHEDULE_INTERVAL_DAYS * SECONDS_PER_DAY,
    ) -> None:
        self.orchestrator = orchestrator
        self.scope = Scope(scope)
        self.interval = interval
        self.executions: List[WorkflowExecution] = []

    async def run_once(self) -> Optional[WorkflowExecution]:
        """Run the workflow once; errors are logged, not raised."""
        try:
            execution = await self.orchestrator.execute_complete_workflow(self.scope)
        except Exception as e:
            logger.error(f"Scheduled workflow run failed: {e}")
            return None
        self.executions.append(execution)
        return execution

    async def start(self, lifespan: Optional[float] = None) -> None:
        """Run immediately and then every ``interval`` seconds.

        Args:
            lifespan: Maximum time in seconds to keep scheduling. If None, runs indefinitely.
        """
        loop = asyncio.get_event_loop()
        start_time = loop.time()
        logger.info(
            f"Scheduler started: scope={self.scope.value} interval={self.interval}s"
        )

        while True:
            await self.run_once()

            if lifespan is not None:
                remaining = lifespan - (loop.time() - start_time)
                if remaining <= 0:
                    break
                await asyncio.sleep(min(self.interval, remaining))
                if loop.time() - start_time >= lifespan:
                    break
            else:
                await asyncio.sleep(self.interval)

        logger.info(f"Scheduler stopped after {len(self.executions)} runs")
