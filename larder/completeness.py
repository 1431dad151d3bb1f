"""Completeness rules for meals and ingredients.

Each entity kind has a table of ``(field, presence check)`` rules. A record
needs enhancement when any rule in its table fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from .constants import VALID_INGREDIENT_TYPES
from .contracts import EntityKind
from .models import Ingredient, Meal, Record

logger = logging.getLogger(__name__)


def is_filled(value: Any) -> bool:
    """Presence in the loose sense: not None, not blank, not empty, not zero."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, BaseModel):
        return bool(value.model_dump(exclude_none=True))
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return bool(value)


def is_defined(value: Any) -> bool:
    return value is not None


class Rule(NamedTuple):
    """A field that must be present, and how presence is judged."""

    field: str
    present: Callable[[Record], bool]


def _filled(attr: str) -> Rule:
    return Rule(attr, lambda record: is_filled(getattr(record, attr, None)))


def _defined(attr: str) -> Rule:
    return Rule(attr, lambda record: is_defined(getattr(record, attr, None)))


MEAL_ENHANCEMENT_RULES: Tuple[Rule, ...] = (
    _filled("description"),
    _filled("type"),
    _filled("cooking_time"),
    _filled("cooking_method"),
    _filled("instructions"),
    _filled("categories"),
    _filled("serve_qty"),
    Rule(
        "nutritional_info",
        lambda meal: is_filled(getattr(meal, "nutritional_info", None))
        or is_filled(getattr(meal, "nutrition", None)),
    ),
    _filled("ingredients"),
)

INGREDIENT_ENHANCEMENT_RULES: Tuple[Rule, ...] = (
    _filled("calories"),
    _filled("macros"),
    _filled("categories"),
    _filled("features"),
    _filled("techniques"),
    _filled("storage_options"),
    _defined("is_anti_inflammatory"),
    _filled("alt"),
    _filled("image"),
)

ENHANCEMENT_RULES: Dict[EntityKind, Tuple[Rule, ...]] = {
    EntityKind.MEALS: MEAL_ENHANCEMENT_RULES,
    EntityKind.INGREDIENTS: INGREDIENT_ENHANCEMENT_RULES,
}

RECORD_TYPES: Dict[EntityKind, Type[Record]] = {
    EntityKind.MEALS: Meal,
    EntityKind.INGREDIENTS: Ingredient,
}


def needs_title(record: Record) -> bool:
    return not record.has_title


def needs_type_update(record: Record) -> bool:
    """Ingredient type is missing or outside the valid set."""
    return not record.type or record.type not in VALID_INGREDIENT_TYPES


def missing_fields(kind: EntityKind, record: Record) -> List[str]:
    return [rule.field for rule in ENHANCEMENT_RULES[kind] if not rule.present(record)]


def needs_enhancement(kind: EntityKind, record: Record) -> bool:
    return any(not rule.present(record) for rule in ENHANCEMENT_RULES[kind])


def is_duplicate_candidate(record: Record) -> bool:
    """Placeholder for per-record duplicate flagging.

    Duplicate groups come from :mod:`larder.duplicates`; this check never
    flags a record, so ``needs_transformation`` stays empty.
    """
    return False


@dataclass
class KindAnalysis:
    """Classification of every fetched record of one entity kind."""

    kind: EntityKind
    total: int = 0
    with_titles: int = 0
    without_titles: List[Record] = field(default_factory=list)
    needs_transformation: List[str] = field(default_factory=list)
    needs_type_update: List[str] = field(default_factory=list)
    needs_enhancement: List[str] = field(default_factory=list)

    @property
    def without_titles_count(self) -> int:
        return len(self.without_titles)


def analyze(kind: EntityKind, records: Sequence[Record]) -> KindAnalysis:
    """Classify ``records`` against the title, type and enhancement checks."""
    kind = EntityKind(kind)
    result = KindAnalysis(kind=kind, total=len(records))
    for record in records:
        if needs_title(record):
            result.without_titles.append(record)
        else:
            result.with_titles += 1

        if record.has_title and is_duplicate_candidate(record):
            result.needs_transformation.append(record.id)
        if kind is EntityKind.INGREDIENTS and needs_type_update(record):
            result.needs_type_update.append(record.id)
        if needs_enhancement(kind, record):
            result.needs_enhancement.append(record.id)

    logger.info(
        f"{kind.value}: total={result.total} with_titles={result.with_titles} "
        f"without_titles={result.without_titles_count} "
        f"type_update={len(result.needs_type_update)} "
        f"enhancement={len(result.needs_enhancement)}"
    )
    return result


def parse_record(kind: EntityKind, document: dict) -> Record:
    """Build one typed record; raises ``ValidationError`` on a malformed document."""
    return RECORD_TYPES[EntityKind(kind)].model_validate(document)


def split_records(
    kind: EntityKind, documents: Sequence[dict]
) -> Tuple[List[Record], List[str]]:
    """Build typed records from store documents.

    Returns the parsed records and the ids of documents that failed
    validation. A malformed document never stops the others from loading.
    """
    kind = EntityKind(kind)
    records: List[Record] = []
    malformed: List[str] = []
    for document in documents:
        try:
            records.append(parse_record(kind, document))
        except ValidationError as e:
            record_id = str(document.get("id", ""))
            logger.warning(
                f"Skipping malformed {kind.value} {record_id}: "
                f"{e.error_count()} validation error(s)"
            )
            malformed.append(record_id)
    return records, malformed


def parse_records(kind: EntityKind, documents: Sequence[dict]) -> List[Record]:
    return split_records(kind, documents)[0]
