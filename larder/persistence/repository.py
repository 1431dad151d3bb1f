"""Repository abstractions for records and workflow state."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import (
    AnalysisResult,
    EntityKind,
    ProgressAction,
    WorkflowExecution,
    WorkflowState,
)
from .models import Document, TimeFilter


class RecordStore(Protocol):
    """Protocol for the document store holding meals and ingredients."""

    async def list_all(
        self, kind: EntityKind, time_filter: Optional[TimeFilter] = None
    ) -> list[Document]:
        """Return every document of ``kind`` matching ``time_filter``, with its ``id``."""

    async def get(self, kind: EntityKind, record_id: str) -> Document | None:
        """Return one document or ``None``."""

    async def update(self, kind: EntityKind, record_id: str, fields: dict) -> None:
        """Merge ``fields`` into an existing document."""

    async def insert(self, kind: EntityKind, fields: dict) -> str:
        """Create a document and return its identifier."""


class WorkflowStateStore(Protocol):
    """Protocol for persisted analysis, backlog and run records."""

    def load_analysis(self) -> AnalysisResult | None:
        """Return the last analysis snapshot, if any."""

    def save_analysis(self, result: AnalysisResult) -> None:
        """Overwrite the analysis snapshot."""

    def load_state(self) -> WorkflowState:
        """Return the backlog state, or the default state."""

    def save_state(self, state: WorkflowState) -> None:
        """Overwrite the backlog state."""

    def update_workflow_progress(
        self, kind: EntityKind, action: ProgressAction, ids: list[str]
    ) -> WorkflowState:
        """Move ``ids`` along the backlog and persist the result."""

    def save_execution(self, execution: WorkflowExecution) -> None:
        """Persist a run record."""

    def load_execution(self, execution_id: str) -> WorkflowExecution | None:
        """Return one run record by id."""

    def latest_execution(self) -> WorkflowExecution | None:
        """Return the most recently started run record."""

    def list_executions(self) -> list[WorkflowExecution]:
        """Return all run records, oldest first."""
