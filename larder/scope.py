"""Resolution of named scopes into record time filters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from .contracts import AnalysisScope, Scope
from .persistence.models import CREATED_AT, UPDATED_AT, TimeFilter

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_WINDOWS = {
    Scope.LAST_24_HOURS: timedelta(hours=24),
    Scope.LAST_7_DAYS: timedelta(days=7),
    Scope.LAST_30_DAYS: timedelta(days=30),
}


class ScopeMode(str, Enum):
    """Which timestamps a scope window applies to."""

    CREATED = "created"
    TOUCHED = "touched"


def as_analysis_scope(
    scope: Scope | AnalysisScope | str, start_date: Optional[datetime] = None
) -> AnalysisScope:
    if isinstance(scope, AnalysisScope):
        if start_date is not None:
            return scope.model_copy(update={"start_date": start_date})
        return scope
    return AnalysisScope(type=Scope(scope), start_date=start_date)


def resolve_cutoff(
    scope: Scope | AnalysisScope,
    start_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """Return the earliest timestamp inside ``scope``, or ``None`` for all records."""
    if isinstance(scope, AnalysisScope):
        start_date = start_date or scope.start_date
        scope = scope.type
    scope = Scope(scope)

    if scope is Scope.ALL:
        return None
    if scope is Scope.CUSTOM:
        if start_date is None:
            return EPOCH
        if start_date.tzinfo is None:
            return start_date.replace(tzinfo=timezone.utc)
        return start_date

    now = now or datetime.now(timezone.utc)
    return now - _WINDOWS[scope]


def resolve_filter(
    scope: Scope | AnalysisScope,
    mode: ScopeMode = ScopeMode.CREATED,
    start_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Optional[TimeFilter]:
    """Build the record filter for ``scope``.

    ``CREATED`` keeps records created inside the window. ``TOUCHED`` also
    keeps records updated inside it.
    """
    cutoff = resolve_cutoff(scope, start_date=start_date, now=now)
    if cutoff is None:
        return None
    if mode is ScopeMode.TOUCHED:
        return TimeFilter(fields=(CREATED_AT, UPDATED_AT), cutoff=cutoff)
    return TimeFilter(fields=(CREATED_AT,), cutoff=cutoff)
