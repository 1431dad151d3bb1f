"""Completeness and duplicate analysis over both collections."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ..completeness import analyze, split_records
from ..contracts import (
    AnalysisResult,
    AnalysisScope,
    AnalysisSummary,
    EntityKind,
    IngredientAnalysis,
    MealAnalysis,
    ProgressAction,
    Scope,
    WorkflowState,
)
from ..duplicates import find_duplicate_groups
from ..models import Record
from ..persistence.repository import RecordStore, WorkflowStateStore
from ..recommendations import analysis_recommendations
from ..scope import as_analysis_scope, resolve_filter

logger = logging.getLogger(__name__)


class DataAnalysisService:
    """Produce the analysis snapshot and keep the backlog in step with it."""

    def __init__(self, records: RecordStore, state_store: WorkflowStateStore) -> None:
        self.records = records
        self.state_store = state_store

    async def _load(
        self, kind: EntityKind, scope: AnalysisScope
    ) -> Tuple[List[Record], List[str]]:
        documents = await self.records.list_all(kind, resolve_filter(scope))
        return split_records(kind, documents)

    async def analyze_meals(
        self, scope: Scope | AnalysisScope = Scope.ALL, start_date: Optional[datetime] = None
    ) -> MealAnalysis:
        records, malformed = await self._load(
            EntityKind.MEALS, as_analysis_scope(scope, start_date)
        )
        kind_analysis = analyze(EntityKind.MEALS, records)
        groups = find_duplicate_groups(records)
        return MealAnalysis(
            total=kind_analysis.total,
            with_titles=kind_analysis.with_titles,
            without_titles=kind_analysis.without_titles_count,
            duplicates=sum(len(g.duplicates) for g in groups),
            needs_transformation=kind_analysis.needs_transformation,
            needs_enhancement=kind_analysis.needs_enhancement,
            malformed=malformed,
        )

    async def analyze_ingredients(
        self, scope: Scope | AnalysisScope = Scope.ALL, start_date: Optional[datetime] = None
    ) -> IngredientAnalysis:
        records, malformed = await self._load(
            EntityKind.INGREDIENTS, as_analysis_scope(scope, start_date)
        )
        kind_analysis = analyze(EntityKind.INGREDIENTS, records)
        groups = find_duplicate_groups(records)
        return IngredientAnalysis(
            total=kind_analysis.total,
            with_titles=kind_analysis.with_titles,
            without_titles=kind_analysis.without_titles_count,
            duplicates=sum(len(g.duplicates) for g in groups),
            needs_type_update=kind_analysis.needs_type_update,
            needs_enhancement=kind_analysis.needs_enhancement,
            malformed=malformed,
        )

    async def perform_comprehensive_analysis(
        self, scope: Scope | AnalysisScope = Scope.ALL, start_date: Optional[datetime] = None
    ) -> AnalysisResult:
        """Analyze both collections, persist the snapshot and refresh the backlog."""
        analysis_scope = as_analysis_scope(scope, start_date)
        logger.info(f"Starting comprehensive analysis for scope {analysis_scope.type.value}")

        meals = await self.analyze_meals(analysis_scope)
        ingredients = await self.analyze_ingredients(analysis_scope)

        without_titles = meals.without_titles + ingredients.without_titles
        result = AnalysisResult(
            scope=analysis_scope,
            meals=meals,
            ingredients=ingredients,
            summary=AnalysisSummary(
                total_issues=without_titles
                + len(meals.needs_transformation)
                + len(ingredients.needs_type_update),
                critical_issues=without_titles,
            ),
        )
        result.summary.recommendations = analysis_recommendations(result)

        self.state_store.save_analysis(result)
        state = self.state_store.load_state()
        state.last_analysis = result
        refreshed = {
            EntityKind.MEALS: meals.needs_transformation,
            EntityKind.INGREDIENTS: ingredients.needs_type_update,
        }
        for kind, ids in refreshed.items():
            # ids still being processed stay out of pending
            processing = set(state.processing_queue.ids(kind))
            state.pending_transformations.set_ids(
                kind, [i for i in ids if i not in processing]
            )
        self.state_store.save_state(state)

        logger.info(
            f"Analysis complete: {result.summary.total_issues} issues "
            f"({result.summary.critical_issues} critical)"
        )
        return result

    def get_workflow_state(self) -> WorkflowState:
        return self.state_store.load_state()

    def get_last_analysis(self) -> Optional[AnalysisResult]:
        return self.state_store.load_analysis()

    def update_workflow_progress(
        self, kind: EntityKind, action: ProgressAction, ids: List[str]
    ) -> WorkflowState:
        return self.state_store.update_workflow_progress(kind, action, ids)
