"""Meal remediation service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Sequence

from ..ai import prompts
from ..completeness import is_filled
from ..constants import VALID_COOKING_METHODS, VALID_MEAL_TYPES
from ..contracts import BatchResult, EntityKind, ProgressAction
from ..errors import AIServiceError
from ..models import MealEnhancement, MealVariation, Record
from ..structure import meal_structure_fixes, repair_ingredients
from .base import RecordService

logger = logging.getLogger(__name__)

# Fields the AI may fill in during structure repair when the document lacks them
_STRUCTURE_FILL_FIELDS = ("description", "instructions", "categories", "serveQty")


class MealService(RecordService):
    kind = EntityKind.MEALS
    enhancement_model = MealEnhancement
    variation_model = MealVariation

    def title_prompt(self, record: Record) -> str:
        return prompts.meal_title_prompt(record)

    def enhancement_prompt(self, record: Record, missing: Sequence[str]) -> str:
        return prompts.meal_enhancement_prompt(record, missing)

    def variation_prompt(self, record: Record, existing_titles: Iterable[str]) -> str:
        return prompts.meal_variation_prompt(record, existing_titles)

    def accept_value(self, name: str, value: Any) -> bool:
        if name == "type":
            return value in VALID_MEAL_TYPES
        if name in ("cooking_method", "cookingMethod"):
            return value in VALID_COOKING_METHODS
        return True

    async def transform_duplicates(self) -> BatchResult:
        """Transform duplicate meals and move them through the backlog."""
        groups = await self.find_duplicates()
        ids = [d.id for g in groups for d in g.duplicates]
        self.state_store.update_workflow_progress(self.kind, ProgressAction.START, ids)

        result = await super().transform_duplicates()

        self.state_store.update_workflow_progress(
            self.kind, ProgressAction.COMPLETE, result.succeeded_ids()
        )
        return result

    # ------------------------------------------------------------------
    # Structure repair
    async def structure_fixes(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Rule-based repairs, then AI-proposed values for what is still missing.

        When the AI service fails the rule-based repairs are still applied.
        """
        fixes = meal_structure_fixes(document)
        repaired = {**document, **fixes}
        try:
            proposal = await self.ai.generate_json(
                prompts.meal_structure_prompt(repaired), MealEnhancement
            )
        except AIServiceError as e:
            logger.warning(
                f"AI repair unavailable for meal {document.get('id')}, "
                f"keeping rule-based fixes: {e}"
            )
            return fixes
        finally:
            await self.ai.pace()

        fixes.update(self._proposed_fixes(document, repaired, proposal))
        return fixes

    def _proposed_fixes(
        self,
        original: Mapping[str, Any],
        document: Mapping[str, Any],
        proposal: MealEnhancement,
    ) -> Dict[str, Any]:
        proposed = proposal.to_fields()
        fixes: Dict[str, Any] = {}

        method = proposed.get("cookingMethod")
        # a valid proposal beats the title-based guess for a bad method
        if method and self.accept_value("cookingMethod", method):
            if original.get("cookingMethod") not in VALID_COOKING_METHODS:
                fixes["cookingMethod"] = method

        if not document.get("ingredients") and proposal.ingredients:
            ingredients = repair_ingredients(proposal.ingredients, document.get("title"))
            if ingredients:
                fixes["ingredients"] = ingredients

        for key in _STRUCTURE_FILL_FIELDS:
            if key in proposed and not is_filled(document.get(key)):
                fixes[key] = proposed[key]
        return fixes
