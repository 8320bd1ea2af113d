"""
Paged document reader: load, page navigation, zoom and fullscreen.

Every page change is reported to the progress tracker; rendering and the
fullscreen request belong to the platform and are reached through the small
DocumentRenderer and FullscreenPlatform interfaces.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from errors import RenderFailure

logger = logging.getLogger(__name__)

MIN_SCALE = 0.5
MAX_SCALE = 2.5
SCALE_STEP = 0.25
DEFAULT_SCALE = 1.0


class DocumentRenderer(Protocol):
    async def load(self, url: str) -> int:
        """Open the document and return its page count, raising RenderFailure."""

    def render(self, page_number: int, scale: float) -> None:
        ...


class FullscreenPlatform(Protocol):
    def request(self) -> None:
        ...

    def exit(self) -> None:
        ...


class ReaderState(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class ReaderSession:
    document_id: str
    page_number: int = 1
    num_pages: int = 0
    scale: float = DEFAULT_SCALE
    fullscreen: bool = False
    error: Optional[str] = None


class ReaderPager:
    def __init__(self, document_id: str, tracker=None, platform: Optional[FullscreenPlatform] = None,
                 start_page: int = 1):
        self.tracker = tracker
        self.platform = platform
        self.start_page = start_page
        self.state = ReaderState.LOADING
        self.session = ReaderSession(document_id=document_id)

    @property
    def document_id(self) -> str:
        return self.session.document_id

    @property
    def page_number(self) -> int:
        return self.session.page_number

    @property
    def num_pages(self) -> int:
        return self.session.num_pages

    @property
    def scale(self) -> float:
        return self.session.scale

    @property
    def fullscreen(self) -> bool:
        return self.session.fullscreen

    @property
    def loaded(self) -> bool:
        return self.state == ReaderState.LOADED

    async def load(self, renderer: DocumentRenderer, url: str, is_current=None) -> Optional[ReaderState]:
        """Load the document; the result is dropped if `is_current` says the reader was abandoned meanwhile."""
        self.state = ReaderState.LOADING
        self.session.error = None
        try:
            num_pages = await renderer.load(url)
        except RenderFailure as e:
            if is_current is not None and not is_current():
                return None
            self.load_failed(e.message)
        else:
            if is_current is not None and not is_current():
                return None
            self.load_succeeded(num_pages)
        return self.state

    def load_succeeded(self, num_pages: int) -> None:
        if num_pages <= 0:
            self.load_failed("Document has no pages")
            return
        self.state = ReaderState.LOADED
        self.session.num_pages = num_pages
        self.session.error = None
        self.session.page_number = min(max(self.start_page, 1), num_pages)
        self._report()

    def load_failed(self, reason: str) -> None:
        logger.warning("Document %s failed to load: %s", self.document_id, reason)
        self.state = ReaderState.FAILED
        self.session.error = reason or "Unable to load document"

    def _report(self) -> None:
        if self.tracker is not None:
            self.tracker.on_position_change(self.document_id, self.session.page_number, self.session.num_pages)

    def _go_to(self, page_number: int) -> bool:
        if not self.loaded or page_number == self.session.page_number:
            return False
        self.session.page_number = page_number
        self._report()
        return True

    def next_page(self) -> bool:
        return self._go_to(min(self.session.page_number + 1, self.session.num_pages))

    def prev_page(self) -> bool:
        return self._go_to(max(self.session.page_number - 1, 1))

    def jump_to(self, page_number: int) -> bool:
        if not 1 <= page_number <= self.session.num_pages:
            return False
        return self._go_to(page_number)

    def _zoom(self, step: float) -> float:
        if self.loaded:
            scale = round(self.session.scale + step, 2)
            self.session.scale = min(max(scale, MIN_SCALE), MAX_SCALE)
        return self.session.scale

    def zoom_in(self) -> float:
        return self._zoom(SCALE_STEP)

    def zoom_out(self) -> float:
        return self._zoom(-SCALE_STEP)

    def toggle_fullscreen(self) -> bool:
        if not self.loaded:
            return self.session.fullscreen
        if self.session.fullscreen:
            if self.platform is not None:
                try:
                    self.platform.exit()
                except Exception as e:
                    logger.debug("Exiting fullscreen failed: %s", e)
            self.session.fullscreen = False
            return False
        try:
            if self.platform is not None:
                self.platform.request()
        except Exception as e:
            logger.info("Fullscreen request refused: %s", e)
            return False
        self.session.fullscreen = True
        return True

    def render(self, renderer: DocumentRenderer) -> None:
        if self.loaded:
            renderer.render(self.session.page_number, self.session.scale)

    def close(self) -> None:
        """Tear down the reader, dropping any position write still waiting to go out."""
        if self.tracker is not None:
            self.tracker.cancel(self.document_id)
