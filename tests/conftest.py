import itertools
from typing import Any, Callable, List, Tuple

import mongomock
import pytest

from errors import RemoteError, RenderFailure
from identity import IdentityProvider
from schemas import COLLECTIONS
from store import RemoteStore


class _Timer:
    def __init__(self, when: float, seq: int, callback: Callable, args: Tuple[Any, ...]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class VirtualClock:
    """Deterministic stand-in for loop.call_later; time moves only on advance()."""

    def __init__(self):
        self.now = 0.0
        self._timers: List[_Timer] = []
        self._seq = itertools.count()

    def call_later(self, delay, callback, *args):
        timer = _Timer(self.now + delay, next(self._seq), callback, args)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target


class RecordingStore:
    """Wraps a store, logging write calls and failing the operations named in `fail`."""

    def __init__(self, inner, fail=()):
        self.inner = inner
        self.fail = set(fail)
        self.writes: List[Tuple[str, str, dict]] = []

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if name in self.fail:
            async def failing(*args, **kwargs):
                raise RemoteError("%s unavailable" % name)
            return failing
        if name in ("upsert", "insert", "delete"):
            async def recorded(table, row, *args, **kwargs):
                self.writes.append((name, table, dict(row)))
                return await attr(table, row, *args, **kwargs)
            return recorded
        return attr

    def upserts(self, table=COLLECTIONS["progress"]):
        return [row for op, t, row in self.writes if op == "upsert" and t == table]


class FakeRenderer:
    def __init__(self, pages=10, error=None):
        self.pages = pages
        self.error = error
        self.rendered = []

    async def load(self, url):
        if self.error:
            raise RenderFailure(self.error)
        return self.pages

    def render(self, page_number, scale):
        self.rendered.append((page_number, scale))


@pytest.fixture
def database():
    return mongomock.MongoClient().pustak_test


@pytest.fixture
def mongo_store(database):
    store = RemoteStore(database)
    store.ensure_indexes()
    return store


@pytest.fixture
def store(mongo_store):
    return RecordingStore(mongo_store)


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def identity():
    return IdentityProvider.resolved("user-1")


@pytest.fixture
def anonymous():
    return IdentityProvider.resolved(None)


@pytest.fixture
def scriptures(database):
    rows = [
        {"title": "Yoga Sutras", "title_hindi": "योग सूत्र", "description": "Aphorisms on yoga.",
         "category": "Darshana", "author": "Patanjali", "featured": False,
         "pdf_url": "https://example.org/yoga.pdf"},
        {"title": "Rigveda", "title_hindi": "ऋग्वेद", "description": "Hymns to the devas.",
         "category": "Vedas", "author": None, "featured": True,
         "pdf_url": "https://example.org/rigveda.pdf"},
        {"title": "Bhagavad Gita", "title_hindi": "भगवद् गीता", "description": "Krishna counsels Arjuna.",
         "category": "Itihasa", "author": "Vyasa", "featured": True,
         "pdf_url": "https://example.org/gita.pdf"},
        {"title": "Valmiki Ramayana", "title_hindi": "वाल्मीकि रामायण", "description": "The epic of Rama.",
         "category": "Itihasa", "author": "Valmiki", "featured": True, "pdf_url": None},
        {"title": "Samaveda", "title_hindi": "सामवेद", "description": "Melodies and chants.",
         "category": "vedas", "author": None, "featured": False, "pdf_url": None},
    ]
    result = database[COLLECTIONS["scripture"]].insert_many(rows)
    return {row["title"]: str(i) for row, i in zip(rows, result.inserted_ids)}
