"""Query and document helpers shared by record store backends."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"

Document = Dict[str, Any]


def as_datetime(value: Any) -> Optional[datetime]:
    """Coerce a stored timestamp into an aware datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TimeFilter(BaseModel):
    """Keep documents where any of ``fields`` is at or after ``cutoff``."""

    fields: Tuple[str, ...] = (CREATED_AT,)
    cutoff: datetime

    def matches(self, document: Document) -> bool:
        cutoff = as_datetime(self.cutoff)
        for field in self.fields:
            value = as_datetime(document.get(field))
            if value is not None and value >= cutoff:
                return True
        return False
