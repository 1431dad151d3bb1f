"""JSON file implementation of the workflow state store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..constants import ANALYSIS_FILENAME, RUNS_DIRNAME, WORKFLOW_STATE_FILENAME
from ..contracts import (
    AnalysisResult,
    EntityKind,
    ProgressAction,
    WorkflowExecution,
    WorkflowState,
)
from .repository import WorkflowStateStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class JsonStateStore(WorkflowStateStore):
    """Keep the analysis snapshot, backlog and run records as JSON documents.

    Everything lives under ``state_dir``, which is created on first use.
    Reads never raise: a missing or unreadable document is reported as
    absent. Writes are best effort; I/O failures are logged and swallowed.
    """

    def __init__(self, state_dir: str | Path) -> None:
        self.state_dir = Path(state_dir)
        self.analysis_file = self.state_dir / ANALYSIS_FILENAME
        self.workflow_file = self.state_dir / WORKFLOW_STATE_FILENAME
        self.runs_dir = self.state_dir / RUNS_DIRNAME

    # ------------------------------------------------------------------
    # Helpers
    def _write(self, path: Path, model: BaseModel) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(model.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
            logger.debug(f"Saved {path}")
        except OSError as e:
            logger.error(f"Error saving {path}: {e}")

    def _read(self, path: Path, model_cls: Type[M]) -> Optional[M]:
        if not path.exists():
            return None
        try:
            return model_cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error loading {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Analysis snapshot
    def load_analysis(self) -> AnalysisResult | None:
        return self._read(self.analysis_file, AnalysisResult)

    def save_analysis(self, result: AnalysisResult) -> None:
        self._write(self.analysis_file, result)

    # ------------------------------------------------------------------
    # Backlog
    def load_state(self) -> WorkflowState:
        return self._read(self.workflow_file, WorkflowState) or WorkflowState()

    def save_state(self, state: WorkflowState) -> None:
        self._write(self.workflow_file, state)

    def update_workflow_progress(
        self, kind: EntityKind, action: ProgressAction, ids: list[str]
    ) -> WorkflowState:
        kind = EntityKind(kind)
        action = ProgressAction(action)
        state = self.load_state()

        if action is ProgressAction.START:
            source, target = state.pending_transformations, state.processing_queue
        else:
            source, target = state.processing_queue, state.completed

        source_ids = source.ids(kind)
        moving = [i for i in dict.fromkeys(ids) if i in source_ids]
        target_ids = target.ids(kind)
        target.set_ids(kind, target_ids + [i for i in moving if i not in target_ids])
        source.set_ids(kind, [i for i in source_ids if i not in moving])
        if action is ProgressAction.START:
            # restarted work is no longer complete
            completed_ids = state.completed.ids(kind)
            state.completed.set_ids(kind, [i for i in completed_ids if i not in moving])

        logger.info(
            f"Workflow progress {action.value} for {len(moving)} {kind.value} "
            f"({len(ids) - len(moving)} ignored)"
        )
        self.save_state(state)
        return state

    # ------------------------------------------------------------------
    # Run records
    def _execution_path(self, execution_id: str) -> Path:
        return self.runs_dir / f"{execution_id}.json"

    def save_execution(self, execution: WorkflowExecution) -> None:
        self._write(self._execution_path(execution.id), execution)

    def load_execution(self, execution_id: str) -> WorkflowExecution | None:
        return self._read(self._execution_path(execution_id), WorkflowExecution)

    def list_executions(self) -> list[WorkflowExecution]:
        if not self.runs_dir.is_dir():
            return []
        executions = []
        for path in self.runs_dir.glob("*.json"):
            execution = self._read(path, WorkflowExecution)
            if execution is not None:
                executions.append(execution)
        return sorted(executions, key=lambda e: (e.timestamp, e.id))

    def latest_execution(self) -> WorkflowExecution | None:
        executions = self.list_executions()
        return executions[-1] if executions else None
