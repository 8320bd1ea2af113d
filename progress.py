"""
Reading-position tracking with debounced, last-write-wins persistence.

Positions are reported on every page change; only the last one reported within
a quiet period is written, through a per-document table of pending timers.
Writes are fire-and-forget: a failed save is logged and dropped so reading is
never interrupted.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

import settings
from errors import RemoteError
from schemas import COLLECTIONS, ReadingProgress, utcnow

logger = logging.getLogger(__name__)

CONFLICT_KEY = ("user_id", "scripture_id")

# Percentage recorded when a never-read scripture is first opened
STARTED_PERCENTAGE = 5

_UNSET: Any = object()


def compute_percentage(page_number: int, num_pages: Optional[int]) -> Optional[int]:
    """Rounded page/pages percentage, or None when the page count is unknown.

    >>> compute_percentage(3, 10)
    30
    >>> compute_percentage(1, 8)
    13
    >>> compute_percentage(4, 0) is None
    True
    """
    if not num_pages or num_pages <= 0:
        return None
    value = math.floor(page_number * 100 / num_pages + 0.5)
    return max(0, min(100, value))


class LoopScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def call_later(self, delay, callback, *args):
        return asyncio.get_running_loop().call_later(delay, callback, *args)


@dataclass
class PendingWrite:
    page_number: int
    percentage: int
    handle: Any


class ProgressTracker:
    def __init__(self, store, identity, scheduler=None, quiet_period: Optional[float] = None):
        self.store = store
        self.identity = identity
        self.scheduler = scheduler or LoopScheduler()
        self.quiet_period = settings.PROGRESS_DEBOUNCE_SECONDS if quiet_period is None else quiet_period
        self._pending: Dict[str, PendingWrite] = {}
        self._last_percentage: Dict[str, int] = {}
        self._in_flight: Set[asyncio.Future] = set()

    def last_known_percentage(self, document_id: str) -> Optional[int]:
        return self._last_percentage.get(document_id)

    def has_pending(self, document_id: str) -> bool:
        return document_id in self._pending

    def on_position_change(self, document_id: str, page_number: int, num_pages: Optional[int]) -> Optional[int]:
        percentage = compute_percentage(page_number, num_pages)
        if percentage is None:
            return None
        self.cancel(document_id)
        self._last_percentage[document_id] = percentage
        handle = self.scheduler.call_later(self.quiet_period, self._flush, document_id)
        self._pending[document_id] = PendingWrite(page_number, percentage, handle)
        return percentage

    def cancel(self, document_id: str) -> bool:
        self._last_percentage.pop(document_id, None)
        pending = self._pending.pop(document_id, None)
        if pending is None:
            return False
        pending.handle.cancel()
        return True

    def cancel_all(self) -> None:
        for document_id in list(self._pending):
            self.cancel(document_id)

    def _flush(self, document_id: str) -> None:
        pending = self._pending.pop(document_id, None)
        if pending is None:
            return
        task = asyncio.ensure_future(self._write(document_id, pending))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _write(self, document_id: str, pending: PendingWrite) -> None:
        user_id = await self.identity.wait()
        await self.persist(user_id, document_id, pending.page_number, 1, pending.percentage)

    async def wait_idle(self) -> None:
        """Wait for writes that already left the debounce table."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight))

    async def persist(self, user_id: Optional[str], document_id: str, chapter: int,
                      verse: int, percentage: int) -> Optional[ReadingProgress]:
        if not user_id:
            return None
        row = ReadingProgress(
            user_id=user_id,
            scripture_id=document_id,
            current_chapter=max(1, chapter),
            current_verse=max(1, verse),
            progress_percentage=max(0, min(100, percentage)),
            last_read_at=utcnow(),
        )
        try:
            saved = await self.store.upsert(COLLECTIONS["progress"], row.model_dump(), on_conflict=CONFLICT_KEY)
        except RemoteError as e:
            logger.warning("Dropping progress write for %s/%s: %s", user_id, document_id, e)
            return None
        logger.debug("Saved progress %s/%s at %s%%", user_id, document_id, row.progress_percentage)
        return ReadingProgress(**saved)

    async def load_initial(self, user_id: Optional[str], document_id: str) -> Optional[ReadingProgress]:
        if not user_id:
            return None
        try:
            row = await self.store.find_one(
                COLLECTIONS["progress"], {"user_id": user_id, "scripture_id": document_id}
            )
        except RemoteError as e:
            logger.warning("Could not read progress for %s/%s: %s", user_id, document_id, e)
            return None
        return ReadingProgress(**row) if row else None

    async def start(self, user_id: Optional[str], document_id: str, prior=_UNSET) -> int:
        """Record that reading (re)started and return the page to open at.

        A never-read scripture is seeded at chapter 1 with STARTED_PERCENTAGE
        so it shows up as currently reading right away.
        """
        if not user_id:
            return 1
        if prior is _UNSET:
            prior = await self.load_initial(user_id, document_id)
        chapter = prior.current_chapter if prior else 1
        verse = prior.current_verse if prior else 1
        percentage = prior.progress_percentage if prior and prior.progress_percentage else STARTED_PERCENTAGE
        await self.persist(user_id, document_id, chapter, verse, percentage)
        return chapter

    async def reading_list(self, user_id: Optional[str]) -> List[ReadingProgress]:
        """The user's progress rows, most recently read first."""
        if not user_id:
            return []
        try:
            rows = await self.store.find(
                COLLECTIONS["progress"], {"user_id": user_id}, sort=[("last_read_at", -1), ("_id", -1)]
            )
        except RemoteError as e:
            logger.warning("Could not read progress list for %s: %s", user_id, e)
            return []
        return [ReadingProgress(**row) for row in rows]

    async def percentages(self, user_id: Optional[str]) -> Dict[str, int]:
        return {p.scripture_id: p.progress_percentage for p in await self.reading_list(user_id)}
