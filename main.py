import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import settings
from database import db
from errors import ErrorKind, PortalError
from filters import CATEGORIES
from identity import IdentityProvider
from portal import Portal
from schemas import COLLECTIONS, Scripture as ScriptureSchema, utcnow
from store import RemoteStore

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Sanatan Pustak Sanghralay API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.RENDER_FAILURE: 409,
    ErrorKind.REMOTE: 502,
}

# -------------------- Dependencies --------------------

_store: Optional[RemoteStore] = None


def get_store() -> RemoteStore:
    global _store
    if _store is None:
        if db is None:
            raise HTTPException(status_code=503, detail="Database not available")
        _store = RemoteStore(db)
        _store.ensure_indexes()
    return _store


async def get_portal(store: RemoteStore = Depends(get_store),
                     x_user_id: Optional[str] = Header(None)) -> Portal:
    return Portal(store, IdentityProvider.resolved(x_user_id))


def http_error(e: PortalError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND.get(e.kind, 500), detail=e.message)

# -------------------- Health --------------------

@app.get("/")
def read_root():
    return {"message": "Sanatan Pustak Sanghralay Backend Running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.DATABASE_URL else "❌ Not Set",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": []
    }

    if db is None:
        return response
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except Exception as e:
        response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"

    return response

# -------------------- Schemas (Requests) --------------------

class ProgressUpsert(BaseModel):
    scripture_id: str
    current_chapter: int = Field(1, ge=1)
    current_verse: int = Field(1, ge=1)
    progress_percentage: int = Field(..., ge=0, le=100)


class BookmarkToggleRequest(BaseModel):
    bookmarked: bool = Field(..., description="Bookmark state the client currently shows")

# -------------------- Scriptures --------------------

@app.get("/api/categories")
def list_categories():
    return {"categories": ["All", *CATEGORIES]}


@app.get("/api/scriptures")
async def list_scriptures(request: Request, portal: Portal = Depends(get_portal)):
    view = await portal.library(request.query_params)
    return {
        "filters": {"search": view.filters.query, "category": view.filters.category},
        "params": view.params,
        "scriptures": [s.model_dump() for s in view.result.scriptures],
        "count": len(view.result.scriptures),
        "error": view.result.error.value if view.result.error else None,
        "progress": view.progress,
    }


@app.get("/api/scriptures/featured")
async def featured_scriptures(portal: Portal = Depends(get_portal)):
    result = await portal.featured()
    return {
        "scriptures": [s.model_dump() for s in result.scriptures],
        "error": result.error.value if result.error else None,
    }


@app.get("/api/scriptures/{scripture_id}")
async def get_scripture(scripture_id: str, portal: Portal = Depends(get_portal)):
    try:
        view = await portal.open_scripture(scripture_id)
    except PortalError as e:
        raise http_error(e)
    return {
        "scripture": view.scripture.model_dump(),
        "progress": view.progress.model_dump() if view.progress else None,
        "bookmarked": view.bookmarked,
    }


@app.post("/api/scriptures/{scripture_id}/start")
async def start_reading(scripture_id: str, portal: Portal = Depends(get_portal)):
    try:
        scripture = await portal.catalog.get(scripture_id)
    except PortalError as e:
        raise http_error(e)
    start_page = await portal.tracker.start(portal.identity.current, scripture.id)
    return {"scripture_id": scripture.id, "start_page": start_page, "pdf_url": scripture.pdf_url}

# -------------------- Progress --------------------

@app.get("/api/progress/{scripture_id}")
async def get_progress(scripture_id: str, portal: Portal = Depends(get_portal)):
    progress = await portal.tracker.load_initial(portal.identity.current, scripture_id)
    return progress.model_dump() if progress else None


@app.put("/api/progress")
async def upsert_progress(p: ProgressUpsert, portal: Portal = Depends(get_portal)):
    user_id = portal.identity.current
    if not user_id:
        raise HTTPException(status_code=401, detail="Please sign in to track reading progress")
    try:
        await portal.catalog.get(p.scripture_id)
    except PortalError as e:
        raise http_error(e)
    saved = await portal.tracker.persist(
        user_id, p.scripture_id, p.current_chapter, p.current_verse, p.progress_percentage
    )
    # Progress writes never fail the request
    return {"saved": saved is not None, "progress": saved.model_dump() if saved else None}

# -------------------- Bookmarks --------------------

@app.post("/api/bookmarks/{scripture_id}/toggle")
async def toggle_bookmark(scripture_id: str, body: BookmarkToggleRequest,
                          portal: Portal = Depends(get_portal)):
    try:
        await portal.catalog.get(scripture_id)
        bookmarked = await portal.bookmarks.toggle(portal.identity.current, scripture_id, body.bookmarked)
    except PortalError as e:
        raise http_error(e)
    return {"scripture_id": scripture_id, "bookmarked": bookmarked}

# -------------------- Dashboard --------------------

@app.get("/api/dashboard")
async def dashboard(portal: Portal = Depends(get_portal)):
    try:
        board = await portal.dashboard()
    except PortalError as e:
        raise http_error(e)

    def with_scripture(row: Dict[str, Any]) -> Dict[str, Any]:
        scripture = board.scriptures.get(row["scripture_id"])
        row["scripture"] = scripture.model_dump() if scripture else None
        return row

    return {
        "reading": [with_scripture(p.model_dump()) for p in board.reading],
        "bookmarks": [with_scripture(b.model_dump()) for b in board.bookmarks],
        "total_progress": board.total_progress,
    }

# -------------------- Seed (Demo Data) --------------------

DEMO_SCRIPTURES = [
    ScriptureSchema(
        title="Bhagavad Gita",
        title_hindi="भगवद् गीता",
        description="Krishna's discourse to Arjuna on duty, devotion and the nature of the self.",
        category="Itihasa",
        subcategory="Mahabharata",
        author="Vyasa",
        total_chapters=18,
        total_verses=700,
        featured=True,
    ),
    ScriptureSchema(
        title="Rigveda",
        title_hindi="ऋग्वेद",
        description="The oldest of the four Vedas, a collection of hymns to the devas.",
        category="Vedas",
        subcategory="Samhita",
        total_chapters=10,
        total_verses=10552,
        featured=True,
    ),
    ScriptureSchema(
        title="Valmiki Ramayana",
        title_hindi="वाल्मीकि रामायण",
        description="The epic of Rama, his exile and the rescue of Sita.",
        category="Itihasa",
        subcategory="Ramayana",
        author="Valmiki",
        total_chapters=7,
        total_verses=24000,
        featured=True,
    ),
    ScriptureSchema(
        title="Vishnu Purana",
        title_hindi="विष्णु पुराण",
        description="Cosmology, genealogies and the deeds of Vishnu's avatars.",
        category="Puranas",
        subcategory="Mahapuranas",
        author="Parashara",
        total_chapters=6,
    ),
    ScriptureSchema(
        title="Yoga Sutras",
        title_hindi="योग सूत्र",
        description="Aphorisms on the theory and practice of yoga.",
        category="Darshana",
        subcategory="Yoga",
        author="Patanjali",
        total_chapters=4,
        total_verses=196,
    ),
    ScriptureSchema(
        title="Arthashastra",
        title_hindi="अर्थशास्त्र",
        description="Treatise on statecraft, economic policy and military strategy.",
        category="Shastra",
        author="Kautilya",
        total_chapters=15,
    ),
]


@app.post("/api/seed")
async def seed_demo_data(store: RemoteStore = Depends(get_store)):
    table = COLLECTIONS["scripture"]
    # If scriptures already exist, skip
    existing = await store.find(table, limit=1)
    if existing:
        return {"status": "exists"}

    ids = [await store.insert(table, {**s.model_dump(), "created_at": utcnow()}) for s in DEMO_SCRIPTURES]
    logger.info("Seeded %d demo scriptures", len(ids))
    return {"status": "seeded", "ids": ids}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
