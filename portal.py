"""
Client session for the reading portal.

Holds the single active document id. Navigation is the only thing that moves
it; every asynchronous completion is checked against it and discarded when
the user has since moved on.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bookmarks import BookmarkToggle
from catalog import CatalogQueryBuilder, QueryResult
from errors import NotFound, RenderFailure, Unauthenticated
from filters import FilterState, decode, encode
from progress import ProgressTracker
from reader import ReaderPager
from schemas import Bookmark, ReadingProgress, Scripture

logger = logging.getLogger(__name__)


@dataclass
class LibraryView:
    filters: FilterState
    params: Dict[str, str]
    result: QueryResult
    progress: Dict[str, int] = field(default_factory=dict)


@dataclass
class ScriptureView:
    scripture: Scripture
    progress: Optional[ReadingProgress] = None
    bookmarked: bool = False


@dataclass
class Dashboard:
    reading: List[ReadingProgress] = field(default_factory=list)
    bookmarks: List[Bookmark] = field(default_factory=list)
    scriptures: Dict[str, Scripture] = field(default_factory=dict)

    @property
    def total_progress(self) -> float:
        """Mean percentage across everything the user has started, 0 when nothing is."""
        if not self.reading:
            return 0
        return sum(p.progress_percentage for p in self.reading) / len(self.reading)


class Portal:
    def __init__(self, store, identity, scheduler=None, platform=None, quiet_period=None):
        self.identity = identity
        self.platform = platform
        self.catalog = CatalogQueryBuilder(store)
        self.tracker = ProgressTracker(store, identity, scheduler=scheduler, quiet_period=quiet_period)
        self.bookmarks = BookmarkToggle(store)
        self.active_document_id: Optional[str] = None
        self.view: Optional[ScriptureView] = None
        self.reader: Optional[ReaderPager] = None

    def is_active(self, document_id: str) -> bool:
        return document_id is not None and self.active_document_id == document_id

    def navigate(self, document_id: Optional[str]) -> None:
        previous = self.active_document_id
        if self.reader is not None and self.reader.document_id != document_id:
            self.reader.close()
            self.reader = None
        if previous is not None and previous != document_id:
            self.tracker.cancel(previous)
            self.view = None
        self.active_document_id = document_id

    def navigate_away(self) -> None:
        self.navigate(None)

    async def _load_scripture(self, document_id: str) -> Optional[Scripture]:
        """Read the scripture, or None if the user left it before the read came back."""
        try:
            scripture = await self.catalog.get(document_id)
        except NotFound:
            if self.is_active(document_id):
                raise
            scripture = None
        if not self.is_active(document_id):
            logger.debug("Discarding stale scripture read for %s", document_id)
            return None
        return scripture

    async def library(self, params=None) -> LibraryView:
        state = decode(params)
        user_id = await self.identity.wait()
        result, progress = await asyncio.gather(
            self.catalog.search(state), self.tracker.percentages(user_id)
        )
        return LibraryView(filters=state, params=encode(state, params), result=result, progress=progress)

    async def featured(self) -> QueryResult:
        return await self.catalog.featured()

    async def open_scripture(self, document_id: str) -> Optional[ScriptureView]:
        """Show one scripture with the user's progress and bookmark state.

        Returns None when the user navigated elsewhere before the reads came
        back. NotFound is raised for a missing scripture.
        """
        self.navigate(document_id)
        scripture = await self._load_scripture(document_id)
        if scripture is None:
            return None
        user_id = await self.identity.wait()
        progress, bookmarked = await asyncio.gather(
            self.tracker.load_initial(user_id, document_id),
            self.bookmarks.is_bookmarked(user_id, document_id),
        )
        if not self.is_active(document_id):
            logger.debug("Discarding stale scripture view for %s", document_id)
            return None
        self.view = ScriptureView(scripture=scripture, progress=progress, bookmarked=bookmarked)
        return self.view

    async def toggle_bookmark(self) -> bool:
        if self.view is None:
            raise RuntimeError("No scripture is open")
        view = self.view
        document_id = view.scripture.id
        user_id = await self.identity.wait()
        if not user_id:
            raise Unauthenticated("Please sign in to bookmark scriptures")
        bookmarked = await self.bookmarks.toggle(user_id, document_id, view.bookmarked)
        if self.is_active(document_id) and self.view is view:
            view.bookmarked = bookmarked
        return bookmarked

    async def open_reader(self, document_id: str, renderer) -> Optional[ReaderPager]:
        """Open the paged reader, resuming at the stored chapter when there is one."""
        prior_view = self.view if self.view and self.view.scripture.id == document_id else None
        self.navigate(document_id)
        scripture = prior_view.scripture if prior_view else await self._load_scripture(document_id)
        if scripture is None or not self.is_active(document_id):
            return None
        if not scripture.pdf_url:
            raise RenderFailure('The reading content for "%s" is not yet available' % scripture.title)

        user_id = await self.identity.wait()
        if prior_view is not None:
            start_page = await self.tracker.start(user_id, document_id, prior=prior_view.progress)
        else:
            start_page = await self.tracker.start(user_id, document_id)
        if not self.is_active(document_id):
            return None

        pager = ReaderPager(document_id, tracker=self.tracker, platform=self.platform, start_page=start_page)
        self.reader = pager
        state = await pager.load(renderer, scripture.pdf_url,
                                 is_current=lambda: self.is_active(document_id) and self.reader is pager)
        if state is None:
            logger.debug("Discarding stale reader load for %s", document_id)
            return None
        return pager

    async def dashboard(self) -> Dashboard:
        user_id = await self.identity.wait()
        if not user_id:
            raise Unauthenticated("Please sign in to view your dashboard")
        reading, bookmarks = await asyncio.gather(
            self.tracker.reading_list(user_id), self.bookmarks.list_for_user(user_id)
        )
        ids = {p.scripture_id for p in reading} | {b.scripture_id for b in bookmarks}
        scriptures = await self.catalog.by_ids(ids)
        return Dashboard(reading=reading, bookmarks=bookmarks, scriptures=scriptures)

    def close(self) -> None:
        self.navigate_away()
        self.tracker.cancel_all()
