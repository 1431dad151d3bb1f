"""In-memory implementation of the record store."""

from __future__ import annotations

import copy
import uuid
from typing import Dict, Optional

from ..contracts import EntityKind
from ..errors import RecordNotFoundError
from .models import Document, TimeFilter
from .repository import RecordStore


class InMemoryRecordStore(RecordStore):
    """Store records in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Documents keep insertion order.
    """

    def __init__(self) -> None:
        self._collections: Dict[EntityKind, Dict[str, Document]] = {
            kind: {} for kind in EntityKind
        }

    # ------------------------------------------------------------------
    async def list_all(
        self, kind: EntityKind, time_filter: Optional[TimeFilter] = None
    ) -> list[Document]:
        documents = []
        for record_id, data in self._collections[EntityKind(kind)].items():
            if time_filter is not None and not time_filter.matches(data):
                continue
            documents.append({**copy.deepcopy(data), "id": record_id})
        return documents

    async def get(self, kind: EntityKind, record_id: str) -> Document | None:
        data = self._collections[EntityKind(kind)].get(record_id)
        if data is None:
            return None
        return {**copy.deepcopy(data), "id": record_id}

    async def update(self, kind: EntityKind, record_id: str, fields: dict) -> None:
        data = self._collections[EntityKind(kind)].get(record_id)
        if data is None:
            raise RecordNotFoundError(EntityKind(kind).value, record_id)
        data.update(copy.deepcopy(fields))

    async def insert(self, kind: EntityKind, fields: dict) -> str:
        record_id = fields.get("id") or uuid.uuid4().hex
        data = {k: v for k, v in copy.deepcopy(fields).items() if k != "id"}
        self._collections[EntityKind(kind)][record_id] = data
        return record_id
