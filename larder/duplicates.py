"""Duplicate detection by normalized title."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Generic, List, Sequence, TypeVar

from .contracts import DuplicateGroupSummary, DuplicatesSummary
from .models import Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str | None) -> str:
    """Lower-case ``title``, drop punctuation and collapse whitespace."""
    if not title:
        return ""
    text = _PUNCTUATION.sub("", title.lower().strip())
    return _WHITESPACE.sub(" ", text).strip()


@dataclass
class DuplicateGroup(Generic[R]):
    """The earliest record with a title plus every later record sharing it."""

    original: R
    duplicates: List[R] = field(default_factory=list)


def find_duplicate_groups(records: Sequence[R]) -> List[DuplicateGroup[R]]:
    """Group ``records`` by normalized title.

    Records without a title are ignored. Input order decides which record
    is the original: the first one encountered wins, with no other ranking.
    A record belongs to at most one group.
    """
    titled = [r for r in records if r.has_title]
    keys = [normalize_title(r.title) for r in titled]
    logger.info(
        f"Analyzing {len(titled)} records with titles for duplicates "
        f"({len(records) - len(titled)} without titles excluded)"
    )

    groups: List[DuplicateGroup[R]] = []
    claimed = [False] * len(titled)
    for i, current in enumerate(titled):
        if claimed[i]:
            continue
        duplicates = []
        for j in range(i + 1, len(titled)):
            if not claimed[j] and keys[j] and keys[j] == keys[i]:
                duplicates.append(titled[j])
                claimed[j] = True
        if duplicates:
            claimed[i] = True
            groups.append(DuplicateGroup(original=current, duplicates=duplicates))
            logger.debug(
                f'Found duplicate group for "{current.title}": '
                f"{[d.title for d in duplicates]}"
            )
    return groups


def summarize(groups: Sequence[DuplicateGroup]) -> DuplicatesSummary:
    return DuplicatesSummary(
        total_duplicates=sum(len(g.duplicates) for g in groups),
        groups=[
            DuplicateGroupSummary(
                original=g.original.title,
                duplicates=[d.title for d in g.duplicates],
                count=len(g.duplicates),
            )
            for g in groups
        ],
    )
