"""Prioritized, human-readable remediation recommendations."""

from __future__ import annotations

from typing import List, Optional

from .contracts import AnalysisResult, EntityKind, WorkflowState

RUN_ANALYSIS_FIRST = "Run data analysis to identify issues"
ALL_CLEAR = "All data appears to be in good condition"


def _lines(
    meals_without_titles: int,
    ingredients_without_titles: int,
    meals_to_transform: int,
    ingredients_to_retype: int,
    meals_to_enhance: int,
    ingredients_to_enhance: int,
    meals_malformed: int = 0,
    ingredients_malformed: int = 0,
) -> List[str]:
    candidates = [
        (meals_malformed, f"Fix the structure of {meals_malformed} malformed meals"),
        (
            ingredients_malformed,
            f"Fix the structure of {ingredients_malformed} malformed ingredients",
        ),
        (meals_without_titles, f"Add titles to {meals_without_titles} meals"),
        (ingredients_without_titles, f"Add titles to {ingredients_without_titles} ingredients"),
        (meals_to_transform, f"Transform {meals_to_transform} duplicate meals"),
        (ingredients_to_retype, f"Update types for {ingredients_to_retype} ingredients"),
        (meals_to_enhance, f"Enhance {meals_to_enhance} meals with missing details"),
        (
            ingredients_to_enhance,
            f"Enhance {ingredients_to_enhance} ingredients with missing details",
        ),
    ]
    return [line for count, line in candidates if count > 0]


def analysis_recommendations(result: AnalysisResult) -> List[str]:
    """Recommendations derived from a fresh analysis alone."""
    return _lines(
        result.meals.without_titles,
        result.ingredients.without_titles,
        len(result.meals.needs_transformation),
        len(result.ingredients.needs_type_update),
        len(result.meals.needs_enhancement),
        len(result.ingredients.needs_enhancement),
        len(result.meals.malformed),
        len(result.ingredients.malformed),
    )


def build_recommendations(
    last_analysis: Optional[AnalysisResult], state: WorkflowState
) -> List[str]:
    """Recommendations from the latest analysis and the outstanding backlog."""
    if last_analysis is None:
        return [RUN_ANALYSIS_FIRST]

    pending = state.pending_transformations
    lines = _lines(
        last_analysis.meals.without_titles,
        last_analysis.ingredients.without_titles,
        len(pending.ids(EntityKind.MEALS)),
        len(pending.ids(EntityKind.INGREDIENTS)),
        len(last_analysis.meals.needs_enhancement),
        len(last_analysis.ingredients.needs_enhancement),
        len(last_analysis.meals.malformed),
        len(last_analysis.ingredients.malformed),
    )
    return lines or [ALL_CLEAR]
