"""Remediation operations shared by meals and ingredients."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Type

from ..ai import AIClient
from ..completeness import (
    ENHANCEMENT_RULES,
    is_filled,
    missing_fields,
    needs_enhancement,
    needs_title,
    parse_record,
    parse_records,
)
from ..constants import DEFAULT_VARIATION_DELAY_S
from ..contracts import (
    AnalysisScope,
    BatchResult,
    DuplicatesSummary,
    EnhancementResult,
    EntityKind,
    ItemResult,
    Scope,
    TitleCheck,
    utc_now,
)
from ..duplicates import DuplicateGroup, find_duplicate_groups, normalize_title, summarize
from ..errors import AIServiceError
from ..models import Record, _Document
from ..persistence.models import UPDATED_AT
from ..persistence.repository import RecordStore, WorkflowStateStore
from ..scope import ScopeMode, resolve_filter

logger = logging.getLogger(__name__)


class RecordService:
    """Base class for the per-collection remediation services.

    Subclasses set ``kind`` and the model and prompt hooks. Batches are
    processed one record at a time; every AI call is followed by the
    client's pacing delay, and a failure on one record is recorded in the
    batch result without stopping the rest.
    """

    kind: ClassVar[EntityKind]
    title_scope_mode: ClassVar[ScopeMode] = ScopeMode.CREATED
    enhancement_model: ClassVar[Type[_Document]]
    variation_model: ClassVar[Type[_Document]]

    def __init__(
        self,
        records: RecordStore,
        ai: AIClient,
        state_store: WorkflowStateStore,
        variation_delay_s: float = DEFAULT_VARIATION_DELAY_S,
    ) -> None:
        self.records = records
        self.ai = ai
        self.state_store = state_store
        self.variation_delay_s = variation_delay_s

    # ------------------------------------------------------------------
    # Prompt hooks
    def title_prompt(self, record: Record) -> str:
        raise NotImplementedError

    def enhancement_prompt(self, record: Record, missing: Sequence[str]) -> str:
        raise NotImplementedError

    def variation_prompt(self, record: Record, existing_titles: Iterable[str]) -> str:
        raise NotImplementedError

    def accept_value(self, name: str, value: Any) -> bool:
        """Return ``False`` to drop an AI-proposed value before it is written."""
        return True

    async def structure_fixes(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Return the fields that repair the shape of one raw document."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Store access
    async def load(
        self,
        scope: Scope | AnalysisScope = Scope.ALL,
        mode: ScopeMode = ScopeMode.CREATED,
        start_date: Optional[datetime] = None,
    ) -> List[Record]:
        time_filter = resolve_filter(scope, mode, start_date=start_date)
        documents = await self.records.list_all(self.kind, time_filter)
        return parse_records(self.kind, documents)

    async def get(self, record_id: str) -> Optional[Record]:
        document = await self.records.get(self.kind, record_id)
        if document is None:
            return None
        return parse_record(self.kind, document)

    async def write(self, record_id: str, fields: Dict[str, Any]) -> None:
        await self.records.update(self.kind, record_id, {**fields, UPDATED_AT: utc_now()})

    # ------------------------------------------------------------------
    # Duplicates
    async def find_duplicates(self) -> List[DuplicateGroup]:
        return find_duplicate_groups(await self.load())

    async def get_duplicates_summary(self) -> DuplicatesSummary:
        return summarize(await self.find_duplicates())

    async def transform_duplicates(self) -> BatchResult:
        """Rewrite every duplicate as a distinct variation of its original.

        Originals are left untouched. Titles already in the collection, and
        titles assigned earlier in the batch, are rejected.
        """
        records = await self.load()
        groups = find_duplicate_groups(records)
        existing_titles = [r.title for r in records if r.has_title]
        taken = {normalize_title(t) for t in existing_titles}

        result = BatchResult()
        for group in groups:
            for duplicate in group.duplicates:
                result.add(await self._transform(duplicate, existing_titles, taken))

        logger.info(
            f"Transformed {result.success} duplicate {self.kind.value} "
            f"({result.failed} failed)"
        )
        return result

    async def _transform(
        self, record: Record, existing_titles: List[str], taken: set
    ) -> ItemResult:
        try:
            variation = await self.ai.generate_json(
                self.variation_prompt(record, existing_titles), self.variation_model
            )
            title = variation.title.strip()
            if not title or len(title) > self.ai.max_title_length:
                raise AIServiceError("Generated title is invalid")
            if normalize_title(title) in taken:
                raise AIServiceError(f'Variation title "{title}" already exists')

            fields = {
                key: value
                for key, value in variation.to_fields().items()
                if self.accept_value(key, value)
            }
            fields["title"] = title
            await self.write(record.id, fields)
        except Exception as e:
            logger.error(f"Error transforming {self.kind.value} {record.id}: {e}")
            return ItemResult(id=record.id, success=False, error=str(e))
        finally:
            await self.ai.pace(self.variation_delay_s)

        existing_titles.append(title)
        taken.add(normalize_title(title))
        return ItemResult(
            id=record.id,
            success=True,
            details={"oldTitle": record.title, "newTitle": title},
        )

    # ------------------------------------------------------------------
    # Titles
    async def check_without_titles(
        self, scope: Scope | AnalysisScope = Scope.ALL
    ) -> TitleCheck:
        records = await self.load(scope, self.title_scope_mode)
        missing = [r.id for r in records if needs_title(r)]
        return TitleCheck(
            total=len(records),
            with_titles=len(records) - len(missing),
            without_titles=len(missing),
            ids_without_titles=missing,
        )

    async def add_titles(
        self, ids: Sequence[str] = (), scope: Scope | AnalysisScope = Scope.ALL
    ) -> BatchResult:
        """Generate titles for title-less records.

        With ``ids``, only those records are considered; ones that already
        have a title are skipped. Otherwise every title-less record in
        ``scope`` is processed.
        """
        result = BatchResult()
        if ids:
            targets = []
            for record_id in ids:
                try:
                    record = await self.get(record_id)
                except Exception as e:
                    logger.error(f"Error loading {self.kind.value} {record_id}: {e}")
                    result.add(ItemResult(id=record_id, success=False, error=str(e)))
                    continue
                if record is None:
                    result.add(
                        ItemResult(id=record_id, success=False, error="Record not found")
                    )
                elif needs_title(record):
                    targets.append(record)
        else:
            records = await self.load(scope, self.title_scope_mode)
            targets = [r for r in records if needs_title(r)]

        logger.info(f"Adding titles to {len(targets)} {self.kind.value}")
        for record in targets:
            result.add(await self._add_title(record))
        return result

    async def _add_title(self, record: Record) -> ItemResult:
        try:
            title = await self.ai.generate_title(self.title_prompt(record))
            await self.write(record.id, {"title": title})
        except Exception as e:
            logger.error(f"Error adding title to {self.kind.value} {record.id}: {e}")
            return ItemResult(id=record.id, success=False, error=str(e))
        finally:
            await self.ai.pace()
        logger.debug(f'Added title "{title}" to {self.kind.value} {record.id}')
        return ItemResult(id=record.id, success=True, details={"title": title})

    # ------------------------------------------------------------------
    # Enhancement
    def merge_missing(self, record: Record, proposal: _Document) -> Dict[str, Any]:
        """Return the store fields of ``proposal`` that ``record`` still lacks.

        Present values are never replaced. Rule-backed fields follow the
        completeness rules; other fields count as present when filled.
        """
        rule_fields = {rule.field for rule in ENHANCEMENT_RULES[self.kind]}
        lacking = set(missing_fields(self.kind, record))

        names = []
        for name in type(proposal).model_fields:
            value = getattr(proposal, name)
            if value is None or (not isinstance(value, bool) and not is_filled(value)):
                continue
            if name in rule_fields:
                if name not in lacking:
                    continue
            elif is_filled(getattr(record, name, None)):
                continue
            if not self.accept_value(name, value):
                continue
            names.append(name)

        if not names:
            return {}
        return proposal.model_dump(by_alias=True, exclude_none=True, include=set(names))

    async def enhance(self) -> EnhancementResult:
        records = await self.load()
        targets = [r for r in records if needs_enhancement(self.kind, r)]
        logger.info(f"Enhancing {len(targets)} of {len(records)} {self.kind.value}")

        result = EnhancementResult()
        for record in targets:
            result.add(await self._enhance(record))
        return result

    async def _enhance(self, record: Record) -> ItemResult:
        missing = missing_fields(self.kind, record)
        try:
            proposal = await self.ai.generate_json(
                self.enhancement_prompt(record, missing), self.enhancement_model
            )
            fields = self.merge_missing(record, proposal)
            if fields:
                await self.write(record.id, fields)
        except Exception as e:
            logger.error(f"Error enhancing {self.kind.value} {record.id}: {e}")
            return ItemResult(id=record.id, success=False, error=str(e))
        finally:
            await self.ai.pace()
        return ItemResult(
            id=record.id,
            success=True,
            details={"missing": missing, "fields": sorted(fields)},
        )

    # ------------------------------------------------------------------
    # Structure repair
    async def fix_structure(self) -> EnhancementResult:
        """Repair the shape of every stored document of this kind.

        Works on raw documents, so records too malformed to load as models
        are repaired as well. Each item's ``details["fields"]`` names the
        fields that were rewritten; an empty list means the document was
        already in shape.
        """
        documents = await self.records.list_all(self.kind)
        logger.info(f"Checking structure of {len(documents)} {self.kind.value}")

        result = EnhancementResult()
        for document in documents:
            record_id = str(document.get("id", ""))
            try:
                fields = await self.structure_fixes(document)
                if fields:
                    await self.write(record_id, fields)
            except Exception as e:
                logger.error(f"Error fixing structure of {self.kind.value} {record_id}: {e}")
                result.add(ItemResult(id=record_id, success=False, error=str(e)))
                continue
            result.add(
                ItemResult(id=record_id, success=True, details={"fields": sorted(fields)})
            )

        logger.info(f"Fixed structure of {result.updated} {self.kind.value}")
        return result
