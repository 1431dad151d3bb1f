"""larder: data-quality workflows for meal and ingredient records."""

from .ai import AIClient
from .contracts import (
    AnalysisResult,
    EntityKind,
    Scope,
    StepName,
    WorkflowExecution,
    WorkflowState,
)
from .orchestrator import WorkflowOrchestrator, create_orchestrator
from .persistence import get_record_store, get_state_store
from .scheduler import WeeklyScheduler
from .services import DataAnalysisService, IngredientService, MealService

__version__ = "0.1.0"
__all__ = [
    "AIClient",
    "AnalysisResult",
    "DataAnalysisService",
    "EntityKind",
    "IngredientService",
    "MealService",
    "Scope",
    "StepName",
    "WeeklyScheduler",
    "WorkflowExecution",
    "WorkflowOrchestrator",
    "WorkflowState",
    "create_orchestrator",
    "get_record_store",
    "get_state_store",
]
