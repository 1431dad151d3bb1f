"""Ingredient remediation service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set

from ..ai import prompts
from ..completeness import needs_type_update
from ..constants import VALID_INGREDIENT_TYPES
from ..contracts import (
    AnalysisScope,
    BatchResult,
    EntityKind,
    ItemResult,
    ProgressAction,
    Scope,
    utc_now,
)
from ..duplicates import normalize_title
from ..errors import AIServiceError
from ..models import IngredientEnhancement, IngredientVariation, Record
from ..persistence.models import CREATED_AT, UPDATED_AT
from ..scope import ScopeMode
from ..structure import ingredient_structure_fixes, repair_features, repair_storage_options
from .base import RecordService

logger = logging.getLogger(__name__)


class IngredientService(RecordService):
    """Titles, details, duplicates and type classification for ingredients.

    Title checks and type updates consider ingredients created *or* updated
    inside the scope window.
    """

    kind = EntityKind.INGREDIENTS
    title_scope_mode = ScopeMode.TOUCHED
    enhancement_model = IngredientEnhancement
    variation_model = IngredientVariation

    def title_prompt(self, record: Record) -> str:
        return prompts.ingredient_title_prompt(record)

    def enhancement_prompt(self, record: Record, missing: Sequence[str]) -> str:
        return prompts.ingredient_enhancement_prompt(record, missing)

    def variation_prompt(self, record: Record, existing_titles: Iterable[str]) -> str:
        return prompts.ingredient_variation_prompt(record, existing_titles)

    def accept_value(self, name: str, value: Any) -> bool:
        if name == "type":
            return value in VALID_INGREDIENT_TYPES
        return True

    async def structure_fixes(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return ingredient_structure_fixes(document)

    # ------------------------------------------------------------------
    # Type classification
    async def get_needing_type_updates(
        self, scope: Scope | AnalysisScope = Scope.LAST_24_HOURS
    ) -> List[Record]:
        records = await self.load(scope, ScopeMode.TOUCHED)
        return [r for r in records if needs_type_update(r)]

    async def update_type(self, record_id: str) -> ItemResult:
        """Classify one ingredient and write the new type."""
        record = None
        try:
            record = await self.get(record_id)
            if record is None:
                return ItemResult(id=record_id, success=False, error="Record not found")
            new_type = await self.ai.classify_ingredient_type(
                prompts.ingredient_type_prompt(record)
            )
            await self.write(record_id, {"type": new_type})
        except Exception as e:
            logger.error(f"Error updating type of ingredient {record_id}: {e}")
            return ItemResult(id=record_id, success=False, error=str(e))
        finally:
            if record is not None:
                await self.ai.pace()

        logger.debug(f"Ingredient {record_id} type {record.type!r} -> {new_type!r}")
        return ItemResult(
            id=record_id,
            success=True,
            details={"oldType": record.type, "newType": new_type},
        )

    async def update_types(
        self,
        ids: Sequence[str] = (),
        scope: Scope | AnalysisScope = Scope.LAST_24_HOURS,
    ) -> BatchResult:
        if ids:
            targets = list(ids)
        else:
            targets = [r.id for r in await self.get_needing_type_updates(scope)]

        logger.info(f"Updating types for {len(targets)} ingredients")
        self.state_store.update_workflow_progress(self.kind, ProgressAction.START, targets)

        result = BatchResult()
        for record_id in targets:
            result.add(await self.update_type(record_id))

        self.state_store.update_workflow_progress(
            self.kind, ProgressAction.COMPLETE, result.succeeded_ids()
        )
        return result

    # ------------------------------------------------------------------
    # Generation
    async def generate_new(self, quantities: Mapping[str, int]) -> BatchResult:
        """Insert AI-invented ingredients, ``quantities[type]`` of each type.

        Generated titles must not clash with any stored title or with one
        generated earlier in the batch. A failed attempt is reported as
        ``<type>-<n>`` since no record was created for it.
        """
        unknown = [t for t in quantities if t not in VALID_INGREDIENT_TYPES]
        if unknown:
            raise ValueError(f"Unknown ingredient type(s): {', '.join(unknown)}")

        documents = await self.records.list_all(self.kind)
        existing_titles = [
            d["title"] for d in documents if isinstance(d.get("title"), str) and d["title"].strip()
        ]
        taken = {normalize_title(t) for t in existing_titles}

        result = BatchResult()
        for ingredient_type, quantity in quantities.items():
            if quantity <= 0:
                continue
            logger.info(f"Generating {quantity} new {ingredient_type} ingredients")
            for n in range(1, quantity + 1):
                result.add(await self._generate(ingredient_type, n, existing_titles, taken))

        logger.info(f"Generated {result.success} ingredients ({result.failed} failed)")
        return result

    async def _generate(
        self, ingredient_type: str, n: int, existing_titles: List[str], taken: Set[str]
    ) -> ItemResult:
        try:
            proposal = await self.ai.generate_json(
                prompts.ingredient_generation_prompt(ingredient_type, existing_titles),
                IngredientVariation,
            )
            title = proposal.title.strip()
            if not title or len(title) > self.ai.max_title_length:
                raise AIServiceError("Generated title is invalid")
            if normalize_title(title) in taken:
                raise AIServiceError(f'Ingredient "{title}" already exists')
            document = self.new_document(ingredient_type, title, proposal)
            record_id = await self.records.insert(self.kind, document)
        except Exception as e:
            logger.error(f"Error generating {ingredient_type} ingredient {n}: {e}")
            return ItemResult(id=f"{ingredient_type}-{n}", success=False, error=str(e))
        finally:
            await self.ai.pace(self.variation_delay_s)

        existing_titles.append(title)
        taken.add(normalize_title(title))
        return ItemResult(
            id=record_id, success=True, details={"title": title, "type": ingredient_type}
        )

    def new_document(
        self, ingredient_type: str, title: str, proposal: IngredientVariation
    ) -> Dict[str, Any]:
        """A complete ingredient document with defaults for what the AI left out."""
        fields = {
            key: value
            for key, value in proposal.to_fields().items()
            if self.accept_value(key, value)
        }
        now = utc_now()
        return {
            "mediaPaths": [],
            "calories": 0,
            "macros": {"protein": "0g", "carbs": "0g", "fat": "0g"},
            "categories": [],
            "techniques": [],
            "isAntiInflammatory": False,
            "alt": [],
            "image": "",
            **fields,
            "title": title,
            "type": ingredient_type,
            "features": repair_features(fields.get("features")),
            "storageOptions": repair_storage_options(fields.get("storageOptions")),
            "isSelected": False,
            CREATED_AT: now,
            UPDATED_AT: now,
        }
