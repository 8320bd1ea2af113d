"""
Bookmark toggling. The caller flips its bookmark state only after the write
succeeds, so a failed toggle is raised rather than rolled back.
"""

import logging
from typing import List, Optional

from errors import RemoteError, Unauthenticated
from schemas import COLLECTIONS, Bookmark, utcnow

logger = logging.getLogger(__name__)


class BookmarkToggle:
    def __init__(self, store):
        self.store = store

    async def is_bookmarked(self, user_id: Optional[str], document_id: str) -> bool:
        if not user_id:
            return False
        try:
            row = await self.store.find_one(
                COLLECTIONS["bookmark"], {"user_id": user_id, "scripture_id": document_id}
            )
        except RemoteError as e:
            logger.warning("Could not read bookmark for %s/%s: %s", user_id, document_id, e)
            return False
        return row is not None

    async def toggle(self, user_id: Optional[str], document_id: str, currently_bookmarked: bool) -> bool:
        if not user_id:
            raise Unauthenticated("Please sign in to bookmark scriptures")
        key = {"user_id": user_id, "scripture_id": document_id}
        try:
            if currently_bookmarked:
                await self.store.delete(COLLECTIONS["bookmark"], key)
                logger.info("Bookmark removed: %s/%s", user_id, document_id)
                return False
            row = Bookmark(user_id=user_id, scripture_id=document_id, created_at=utcnow())
            await self.store.insert(COLLECTIONS["bookmark"], row.model_dump())
        except RemoteError as e:
            logger.error("Bookmark toggle failed for %s/%s: %s", user_id, document_id, e)
            raise
        logger.info("Bookmark added: %s/%s", user_id, document_id)
        return True

    async def list_for_user(self, user_id: Optional[str]) -> List[Bookmark]:
        if not user_id:
            return []
        try:
            rows = await self.store.find(
                COLLECTIONS["bookmark"], {"user_id": user_id}, sort=[("created_at", -1), ("_id", -1)]
            )
        except RemoteError as e:
            logger.warning("Could not read bookmarks for %s: %s", user_id, e)
            return []
        return [Bookmark(**row) for row in rows]
