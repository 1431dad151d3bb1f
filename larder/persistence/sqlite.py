"""SQLite implementation of the record store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Optional

from pydantic_core import to_jsonable_python

from ..contracts import EntityKind
from ..errors import RecordNotFoundError
from .models import Document, TimeFilter
from .repository import RecordStore


class SQLiteRecordStore(RecordStore):
    """Persist meal and ingredient documents as JSON rows in SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS records (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL,
                UNIQUE (kind, id)
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    @staticmethod
    def _dumps(data: dict) -> str:
        return json.dumps(to_jsonable_python(data))

    # ------------------------------------------------------------------
    # Store API
    async def list_all(
        self, kind: EntityKind, time_filter: Optional[TimeFilter] = None
    ) -> list[Document]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT id, data FROM records WHERE kind = ? ORDER BY seq",
            EntityKind(kind).value,
        )
        documents = []
        for row in rows:
            data = json.loads(row["data"])
            if time_filter is not None and not time_filter.matches(data):
                continue
            documents.append({**data, "id": row["id"]})
        return documents

    async def get(self, kind: EntityKind, record_id: str) -> Document | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT id, data FROM records WHERE kind = ? AND id = ?",
            EntityKind(kind).value,
            record_id,
        )
        if not row:
            return None
        return {**json.loads(row["data"]), "id": row["id"]}

    async def update(self, kind: EntityKind, record_id: str, fields: dict) -> None:
        current = await self.get(kind, record_id)
        if current is None:
            raise RecordNotFoundError(EntityKind(kind).value, record_id)
        current.pop("id", None)
        current.update(fields)
        await asyncio.to_thread(
            self._execute,
            "UPDATE records SET data = ? WHERE kind = ? AND id = ?",
            self._dumps(current),
            EntityKind(kind).value,
            record_id,
        )

    async def insert(self, kind: EntityKind, fields: dict) -> str:
        record_id = fields.get("id") or uuid.uuid4().hex
        data = {k: v for k, v in fields.items() if k != "id"}
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO records (kind, id, data) VALUES (?, ?, ?)",
            EntityKind(kind).value,
            record_id,
            self._dumps(data),
        )
        return record_id
