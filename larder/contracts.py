"""Core contracts shared by the analysis, state and orchestration layers."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EntityKind(str, Enum):
    """Record collections maintained by larder."""

    MEALS = "meals"
    INGREDIENTS = "ingredients"


class Scope(str, Enum):
    """Named time windows used to bound which records a step considers."""

    ALL = "all"
    LAST_24_HOURS = "last24hours"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"
    CUSTOM = "custom"


class StepName(str, Enum):
    """The fixed workflow steps, in execution order."""

    DATA_ANALYSIS = "data-analysis"
    DUPLICATE_DETECTION = "duplicate-detection"
    TITLE_VALIDATION = "title-validation"
    TITLE_ADDITION = "title-addition"
    TRANSFORMATION_CHECK = "transformation-check"
    ENHANCEMENT_EXECUTION = "enhancement-execution"


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProgressAction(str, Enum):
    START = "start"
    COMPLETE = "complete"


class _Contract(BaseModel):
    """Persisted and reported models use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisScope(_Contract):
    """A scope tag plus the explicit dates used by ``custom``.

    ``end_date`` is recorded with the snapshot; filtering only applies the
    lower bound.
    """

    type: Scope = Scope.ALL
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class DuplicateGroupSummary(_Contract):
    original: Optional[str] = None
    duplicates: List[Optional[str]] = Field(default_factory=list)
    count: int = 0


class DuplicatesSummary(_Contract):
    total_duplicates: int = 0
    groups: List[DuplicateGroupSummary] = Field(default_factory=list)


class TitleCheck(_Contract):
    """Outcome of a title validation pass for one entity kind."""

    total: int = 0
    with_titles: int = 0
    without_titles: int = 0
    ids_without_titles: List[str] = Field(default_factory=list)


class MealAnalysis(_Contract):
    total: int = 0
    with_titles: int = 0
    without_titles: int = 0
    duplicates: int = 0
    needs_transformation: List[str] = Field(default_factory=list)
    needs_enhancement: List[str] = Field(default_factory=list)
    malformed: List[str] = Field(default_factory=list)


class IngredientAnalysis(_Contract):
    total: int = 0
    with_titles: int = 0
    without_titles: int = 0
    duplicates: int = 0
    needs_type_update: List[str] = Field(default_factory=list)
    needs_enhancement: List[str] = Field(default_factory=list)
    malformed: List[str] = Field(default_factory=list)


class AnalysisSummary(_Contract):
    total_issues: int = 0
    critical_issues: int = 0
    recommendations: List[str] = Field(default_factory=list)


class AnalysisResult(_Contract):
    """Snapshot produced by one comprehensive analysis."""

    timestamp: datetime = Field(default_factory=utc_now)
    scope: AnalysisScope = Field(default_factory=AnalysisScope)
    meals: MealAnalysis = Field(default_factory=MealAnalysis)
    ingredients: IngredientAnalysis = Field(default_factory=IngredientAnalysis)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)


class Backlog(_Contract):
    """Record identifiers per entity kind."""

    meals: List[str] = Field(default_factory=list)
    ingredients: List[str] = Field(default_factory=list)

    def ids(self, kind: EntityKind) -> List[str]:
        return getattr(self, kind.value)

    def set_ids(self, kind: EntityKind, ids: List[str]) -> None:
        setattr(self, kind.value, ids)


class WorkflowState(_Contract):
    """Outstanding remediation work tracked across runs."""

    last_analysis: Optional[AnalysisResult] = None
    pending_transformations: Backlog = Field(default_factory=Backlog)
    processing_queue: Backlog = Field(default_factory=Backlog)
    completed: Backlog = Field(default_factory=Backlog)


class WorkflowStep(_Contract):
    name: StepName
    status: StepStatus = StepStatus.PENDING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None


class ExecutionSummary(_Contract):
    total_steps: int = len(StepName)
    completed_steps: int = 0
    failed_steps: int = 0
    total_issues: int = 0
    critical_issues: int = 0


class WorkflowExecution(_Contract):
    """Run record of one full workflow invocation."""

    id: str
    timestamp: datetime = Field(default_factory=utc_now)
    scope: Scope = Scope.ALL
    steps: List[WorkflowStep] = Field(
        default_factory=lambda: [WorkflowStep(name=name) for name in StepName]
    )
    summary: ExecutionSummary = Field(default_factory=ExecutionSummary)

    def step(self, name: StepName) -> WorkflowStep:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)


class ItemResult(_Contract):
    """Outcome of one remediation operation on one record."""

    id: str
    success: bool
    error: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class BatchResult(_Contract):
    """Per-record outcomes of a remediation batch."""

    results: List[ItemResult] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def add(self, result: ItemResult) -> None:
        self.results.append(result)

    def succeeded_ids(self) -> List[str]:
        return [r.id for r in self.results if r.success]


class EnhancementResult(BatchResult):
    """Enhancement batch; ``updated`` counts records that were written."""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def updated(self) -> int:
        return sum(1 for r in self.results if r.success and r.details.get("fields"))
