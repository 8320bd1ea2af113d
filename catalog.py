"""
Turns library filter state into a remote catalog query and runs it.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import settings
from database import as_object_id
from errors import ErrorKind, NotFound, RemoteError
from filters import ALL, FilterState
from schemas import COLLECTIONS, Scripture

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("title", "title_hindi", "description", "author")

EQUALS = "eq"
IEQUALS = "ieq"
ICONTAINS = "icontains"


@dataclass(frozen=True)
class Predicate:
    field: str
    op: str
    value: Any

    def to_mongo(self) -> Dict[str, Any]:
        if self.op == EQUALS:
            return {self.field: self.value}
        if self.op == IEQUALS:
            return {self.field: {"$regex": "^%s$" % re.escape(self.value), "$options": "i"}}
        if self.op == ICONTAINS:
            return {self.field: {"$regex": re.escape(self.value), "$options": "i"}}
        raise ValueError("unsupported operator: %s" % self.op)


@dataclass(frozen=True)
class CatalogQuery:
    # every predicate in `where` must hold, and at least one of `any_of` when given
    where: Tuple[Predicate, ...] = ()
    any_of: Tuple[Predicate, ...] = ()
    order_by: Tuple[str, ...] = ("title", "_id")
    limit: int = 0

    def predicate(self, field_name: str) -> Optional[Predicate]:
        for p in self.where:
            if p.field == field_name:
                return p
        return None

    def to_filter(self) -> Dict[str, Any]:
        clauses = [p.to_mongo() for p in self.where]
        if self.any_of:
            clauses.append({"$or": [p.to_mongo() for p in self.any_of]})
        if not clauses:
            return {}
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    @property
    def sort(self) -> List[Tuple[str, int]]:
        return [(name, 1) for name in self.order_by]


@dataclass
class QueryResult:
    scriptures: List[Scripture] = field(default_factory=list)
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CatalogQueryBuilder:
    def __init__(self, store):
        self.store = store

    @staticmethod
    def build(state: FilterState) -> CatalogQuery:
        where = ()
        any_of = ()
        if state.category != ALL:
            where = (Predicate("category", IEQUALS, state.category),)
        if state.query:
            any_of = tuple(Predicate(name, ICONTAINS, state.query) for name in SEARCH_FIELDS)
        return CatalogQuery(where=where, any_of=any_of)

    @staticmethod
    def featured_query(limit: Optional[int] = None) -> CatalogQuery:
        return CatalogQuery(
            where=(Predicate("featured", EQUALS, True),),
            limit=settings.FEATURED_LIMIT if limit is None else limit,
        )

    async def execute(self, query: CatalogQuery) -> QueryResult:
        try:
            rows = await self.store.find(
                COLLECTIONS["scripture"], query.to_filter(), sort=query.sort, limit=query.limit
            )
        except RemoteError as e:
            logger.warning("catalog query failed: %s", e)
            return QueryResult(error=e.kind)
        return QueryResult(scriptures=[Scripture(**row) for row in rows])

    async def search(self, state: FilterState) -> QueryResult:
        return await self.execute(self.build(state))

    async def featured(self, limit: Optional[int] = None) -> QueryResult:
        return await self.execute(self.featured_query(limit))

    async def get(self, scripture_id: str) -> Scripture:
        """Load one scripture; a missing record or a failed read is NotFound."""
        try:
            row = await self.store.find_one(COLLECTIONS["scripture"], {"id": scripture_id})
        except RemoteError as e:
            logger.warning("scripture %s could not be read: %s", scripture_id, e)
            raise NotFound("Scripture not found") from e
        if not row:
            raise NotFound("Scripture not found")
        return Scripture(**row)

    async def by_ids(self, scripture_ids) -> Dict[str, Scripture]:
        object_ids = [oid for oid in (as_object_id(i) for i in scripture_ids) if oid is not None]
        if not object_ids:
            return {}
        try:
            rows = await self.store.find(COLLECTIONS["scripture"], {"_id": {"$in": object_ids}})
        except RemoteError as e:
            logger.warning("scripture lookup failed: %s", e)
            return {}
        return {row["id"]: Scripture(**row) for row in rows}
