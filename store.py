"""
Async remote-store adapter over a pymongo database.

Offers the narrow contract the synchronization layer consumes: point read by
key, filtered and ordered query, upsert by conflict key, insert and delete.
pymongo calls run in a worker thread so the event loop is never blocked;
any driver failure is re-raised as RemoteError.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from database import as_object_id, serialize
from errors import RemoteError
from schemas import COLLECTIONS

logger = logging.getLogger(__name__)

Sort = Sequence[Tuple[str, int]]


class RemoteStore:
    def __init__(self, database):
        if database is None:
            raise RemoteError("Database not initialized")
        self._db = database

    def ensure_indexes(self) -> None:
        for name in ("progress", "bookmark"):
            self._db[COLLECTIONS[name]].create_index(
                [("user_id", ASCENDING), ("scripture_id", ASCENDING)], unique=True
            )

    async def _run(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except PyMongoError as e:
            logger.debug("store call %s failed: %s", getattr(fn, "__name__", fn), e)
            raise RemoteError(str(e)) from e

    @staticmethod
    def _key_filter(key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        out = dict(key)
        if "id" in out:
            object_id = as_object_id(out.pop("id"))
            if object_id is None:
                return None
            out["_id"] = object_id
        return out

    async def find_one(self, table: str, key: Dict[str, Any],
                       projection: Optional[Dict[str, int]] = None) -> Optional[Dict[str, Any]]:
        query = self._key_filter(key)
        if query is None:
            return None
        doc = await self._run(self._db[table].find_one, query, projection)
        return serialize(doc) if doc else None

    async def find(self, table: str, filter_dict: Optional[Dict[str, Any]] = None,
                   sort: Optional[Sort] = None, limit: int = 0) -> List[Dict[str, Any]]:
        def query():
            cursor = self._db[table].find(filter_dict or {})
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            return [serialize(d) for d in cursor]

        return await self._run(query)

    async def upsert(self, table: str, row: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        """Insert or fully overwrite the row whose conflict-key fields match."""
        key = {field: row[field] for field in on_conflict}
        doc = await self._run(
            self._db[table].find_one_and_replace,
            key,
            {k: v for k, v in row.items() if k != "id"},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return serialize(doc)

    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        result = await self._run(self._db[table].insert_one, {k: v for k, v in row.items() if k != "id"})
        return str(result.inserted_id)

    async def delete(self, table: str, key: Dict[str, Any]) -> int:
        query = self._key_filter(key)
        if query is None:
            return 0
        result = await self._run(self._db[table].delete_many, query)
        return result.deleted_count
