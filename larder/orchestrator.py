"""Step execution engine for the data-quality workflow."""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic_core import to_jsonable_python

from .ai import AIClient
from .config import LarderConfig, load_config
from .contracts import (
    AnalysisResult,
    AnalysisScope,
    BatchResult,
    Scope,
    StepName,
    StepStatus,
    WorkflowExecution,
    WorkflowStep,
    utc_now,
)
from .errors import UnknownStepError
from .persistence import RecordStore, WorkflowStateStore, get_record_store, get_state_store
from .recommendations import build_recommendations
from .scope import as_analysis_scope
from .services import DataAnalysisService, IngredientService, MealService

logger = logging.getLogger(__name__)

StepOperation = Callable[[AnalysisScope], Awaitable[Any]]


def _combine(**batches: BatchResult) -> Dict[str, Any]:
    """Per-kind batch results plus their summed counts."""
    combined: Dict[str, Any] = dict(batches)
    combined["success"] = sum(b.success for b in batches.values())
    combined["failed"] = sum(b.failed for b in batches.values())
    return combined


class WorkflowOrchestrator:
    """Run the six workflow steps in order and keep a durable run record.

    The run record is persisted after creation and after every step
    transition. A failing step is recorded and the run moves on to the
    next one.
    """

    def __init__(
        self,
        analysis: DataAnalysisService,
        meals: MealService,
        ingredients: IngredientService,
        state_store: WorkflowStateStore,
    ) -> None:
        self.analysis = analysis
        self.meals = meals
        self.ingredients = ingredients
        self.state_store = state_store
        self._operations: Dict[StepName, StepOperation] = {
            StepName.DATA_ANALYSIS: self._data_analysis,
            StepName.DUPLICATE_DETECTION: self._duplicate_detection,
            StepName.TITLE_VALIDATION: self._title_validation,
            StepName.TITLE_ADDITION: self._title_addition,
            StepName.TRANSFORMATION_CHECK: self._transformation_check,
            StepName.ENHANCEMENT_EXECUTION: self._enhancement_execution,
        }

    # ------------------------------------------------------------------
    # Step operations
    async def _data_analysis(self, scope: AnalysisScope) -> AnalysisResult:
        return await self.analysis.perform_comprehensive_analysis(scope)

    async def _duplicate_detection(self, scope: AnalysisScope) -> Dict[str, Any]:
        return {
            "meals": await self.meals.get_duplicates_summary(),
            "ingredients": await self.ingredients.get_duplicates_summary(),
        }

    async def _title_validation(self, scope: AnalysisScope) -> Dict[str, Any]:
        return {
            "meals": await self.meals.check_without_titles(scope),
            "ingredients": await self.ingredients.check_without_titles(scope),
        }

    async def _title_addition(self, scope: AnalysisScope) -> Dict[str, Any]:
        return _combine(
            meals=await self.meals.add_titles(scope=scope),
            ingredients=await self.ingredients.add_titles(scope=scope),
        )

    async def _transformation_check(self, scope: AnalysisScope) -> Any:
        return self.state_store.load_state().pending_transformations

    async def _enhancement_execution(self, scope: AnalysisScope) -> Dict[str, Any]:
        return _combine(
            meals=await self.meals.enhance(),
            ingredients=await self.ingredients.enhance(),
        )

    # ------------------------------------------------------------------
    async def execute_complete_workflow(
        self, scope: Scope | AnalysisScope = Scope.ALL
    ) -> WorkflowExecution:
        """Run every step for ``scope`` and return the finished run record."""
        analysis_scope = as_analysis_scope(scope)
        execution = WorkflowExecution(
            id=f"workflow-{int(time.time() * 1000)}", scope=analysis_scope.type
        )
        self.state_store.save_execution(execution)
        logger.info(f"Starting workflow {execution.id} with scope {execution.scope.value}")

        analysis: Optional[AnalysisResult] = None
        for step in execution.steps:
            output = await self._execute_step(execution, step, analysis_scope)
            if isinstance(output, AnalysisResult):
                analysis = output

        summary = execution.summary
        summary.completed_steps = sum(
            1 for s in execution.steps if s.status is StepStatus.COMPLETED
        )
        summary.failed_steps = sum(1 for s in execution.steps if s.status is StepStatus.FAILED)
        if analysis is not None:
            summary.total_issues = analysis.summary.total_issues
            summary.critical_issues = analysis.summary.critical_issues
        self.state_store.save_execution(execution)

        logger.info(
            f"Workflow {execution.id} finished: {summary.completed_steps} completed, "
            f"{summary.failed_steps} failed"
        )
        return execution

    async def _execute_step(
        self, execution: WorkflowExecution, step: WorkflowStep, scope: AnalysisScope
    ) -> Any:
        """Run one step with bookkeeping; return its output, or ``None`` on failure."""
        step.status = StepStatus.RUNNING
        step.start_time = utc_now()
        self.state_store.save_execution(execution)
        logger.info(f"Executing step {step.name.value}")

        try:
            output = await self._operations[step.name](scope)
        except Exception as e:
            step.status = StepStatus.FAILED
            step.end_time = utc_now()
            step.error = str(e) or type(e).__name__
            self.state_store.save_execution(execution)
            logger.error(f"Step {step.name.value} failed: {step.error}")
            return None

        step.status = StepStatus.COMPLETED
        step.end_time = utc_now()
        step.result = to_jsonable_python(output, by_alias=True)
        self.state_store.save_execution(execution)
        logger.info(f"Step {step.name.value} completed")
        return output

    async def execute_specific_step(
        self, step_name: StepName | str, scope: Scope | AnalysisScope = Scope.ALL
    ) -> Any:
        """Run one step's operation without run-record bookkeeping."""
        try:
            name = StepName(step_name)
        except ValueError:
            raise UnknownStepError(str(step_name)) from None
        analysis_scope = as_analysis_scope(scope)
        logger.info(f"Executing step {name.value} in isolation")
        return await self._operations[name](analysis_scope)

    # ------------------------------------------------------------------
    def get_workflow_status(self) -> Optional[WorkflowExecution]:
        return self.state_store.latest_execution()

    def list_workflows(self) -> List[WorkflowExecution]:
        return self.state_store.list_executions()

    def get_workflow(self, execution_id: str) -> Optional[WorkflowExecution]:
        return self.state_store.load_execution(execution_id)

    def get_workflow_recommendations(self) -> List[str]:
        return build_recommendations(
            self.state_store.load_analysis(), self.state_store.load_state()
        )


def create_orchestrator(
    config: Optional[LarderConfig] = None,
    records: Optional[RecordStore] = None,
    state_store: Optional[WorkflowStateStore] = None,
    ai: Optional[AIClient] = None,
) -> WorkflowOrchestrator:
    """Wire an orchestrator and its services from configuration.

    Collaborators that are passed in are used as-is, which lets tests
    supply in-memory stores and fake AI agents.
    """
    config = config or load_config()
    if records is None:
        records = get_record_store(config=config)
    if state_store is None:
        state_store = get_state_store(config=config)
    if ai is None:
        ai = AIClient(
            model=config.ai.model,
            pacing_delay_s=config.ai.pacing_delay_s,
            max_title_length=config.ai.max_title_length,
        )
    delay = config.ai.variation_delay_s
    return WorkflowOrchestrator(
        analysis=DataAnalysisService(records, state_store),
        meals=MealService(records, ai, state_store, variation_delay_s=delay),
        ingredients=IngredientService(records, ai, state_store, variation_delay_s=delay),
        state_store=state_store,
    )
