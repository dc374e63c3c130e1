# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Entity Store - JSON document persistence for workflows and executions.

Storage structure:
    <data_dir>/
    ├── workflows/
    │   └── {id}.json
    └── executions/
        └── {id}.json

Thread-safe with async per-record locking: every write of a record happens
under that record's lock, so ``mutate`` is an atomic read-modify-write for a
single process.
"""

import asyncio
import json
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import aiofiles
import aiofiles.os

from flashfusion.core.errors import ConflictError, NotFoundError, ValidationError

_RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EntityStore:
    """
    Keyed document store for one entity type.

    Records are plain dicts with an ``id`` key plus ``created_date`` and
    ``updated_date`` timestamps maintained by the store.
    """

    def __init__(self, base_dir: Path, entity: str, id_prefix: Optional[str] = None):
        self.entity = entity
        self.id_prefix = id_prefix or entity.lower()
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        # Async locks for thread-safe file operations
        self._locks: Dict[str, asyncio.Lock] = {}

    def _get_lock(self, record_id: str) -> asyncio.Lock:
        """Get or create lock for a specific record"""
        if record_id not in self._locks:
            self._locks[record_id] = asyncio.Lock()
        return self._locks[record_id]

    def _path(self, record_id: str) -> Path:
        if not isinstance(record_id, str) or not _RECORD_ID_PATTERN.match(record_id):
            raise ValidationError(f"Invalid {self.entity} id: {record_id!r}", field="id")
        return self.base_dir / f"{record_id}.json"

    def new_id(self) -> str:
        return f"{self.id_prefix}_{uuid.uuid4().hex[:12]}"

    async def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        async with aiofiles.open(path, "r") as f:
            return json.loads(await f.read())

    async def _write(self, path: Path, data: Dict[str, Any]) -> None:
        # Write to a sibling temp file, then swap it in
        tmp_path = path.with_suffix(".json.tmp")
        async with aiofiles.open(tmp_path, "w") as f:
            await f.write(json.dumps(data, indent=2, default=str))
        await aiofiles.os.replace(tmp_path, path)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a record.

        Args:
            data: Record body; ``id`` is generated when absent

        Returns:
            Stored record

        Raises:
            ConflictError: If a record with the same id already exists
        """
        record = dict(data)
        record_id = record.get("id") or self.new_id()
        record["id"] = record_id
        path = self._path(record_id)

        async with self._get_lock(record_id):
            if path.exists():
                raise ConflictError(f"{self.entity} '{record_id}' already exists")
            now = utc_now_iso()
            record.setdefault("created_date", now)
            record["updated_date"] = now
            await self._write(path, record)

        return record

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Get a record by id, or None"""
        return await self._read(self._path(record_id))

    async def filter(self, **criteria: Any) -> List[Dict[str, Any]]:
        """
        List records whose fields equal every given criterion.

        Records are returned in creation order.
        """
        records = []
        for path in self.base_dir.glob("*.json"):
            record = await self._read(path)
            if record is None:
                continue
            if all(record.get(key) == value for key, value in criteria.items()):
                records.append(record)

        records.sort(key=lambda r: (r.get("created_date") or "", r.get("id") or ""))
        return records

    async def mutate(
        self,
        record_id: str,
        fn: Callable[[Dict[str, Any]], Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Atomically read a record, transform it with ``fn`` and write it back.

        Raises:
            NotFoundError: If the record does not exist
        """
        path = self._path(record_id)

        async with self._get_lock(record_id):
            record = await self._read(path)
            if record is None:
                raise NotFoundError(self.entity, record_id)

            updated = fn(record)
            updated["id"] = record_id
            updated["updated_date"] = utc_now_iso()
            await self._write(path, updated)

        return updated

    async def update(self, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge ``changes`` into a record"""
        return await self.mutate(record_id, lambda record: {**record, **changes})
