"""
Database Schemas for the Sanatan Pustak reading portal

Each Pydantic model represents a MongoDB collection.
Class name lowercased is used as the collection name by convention:
- Scripture -> "scripture"
- Bookmark -> "bookmark"
- ReadingProgress -> "reading_progress" (explicit, see COLLECTIONS)
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field

COLLECTIONS = {
    "scripture": "scripture",
    "progress": "reading_progress",
    "bookmark": "bookmark",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Scripture(BaseModel):
    id: Optional[str] = Field(None, description="Scripture _id as string")
    title: str = Field(..., description="Scripture title")
    title_hindi: Optional[str] = Field(None, description="Localized (Devanagari) title")
    description: Optional[str] = Field(None, description="Short description of the scripture")
    category: str = Field(..., description="One of the fixed catalog categories")
    subcategory: Optional[str] = Field(None, description="Free-form subcategory, e.g. Upanishads")
    author: Optional[str] = Field(None, description="Traditional author or compiler")
    total_chapters: Optional[int] = Field(None, ge=0, description="Number of chapters")
    total_verses: Optional[int] = Field(None, ge=0, description="Number of verses")
    featured: bool = Field(False, description="Shown in the featured section")
    pdf_url: Optional[str] = Field(None, description="Readable document URL, absent until available")


class ReadingProgress(BaseModel):
    user_id: str = Field(..., description="Signed-in user id")
    scripture_id: str = Field(..., description="Scripture id as string")
    current_chapter: int = Field(1, ge=1, description="Current chapter, doubles as page index in the reader")
    current_verse: int = Field(1, ge=1, description="Current verse (1-based)")
    progress_percentage: int = Field(0, ge=0, le=100, description="Rounded page/pages percentage")
    last_read_at: datetime = Field(default_factory=utcnow, description="Stamped on every write")


class Bookmark(BaseModel):
    id: Optional[str] = Field(None, description="Bookmark _id as string")
    user_id: str = Field(..., description="Signed-in user id")
    scripture_id: str = Field(..., description="Scripture id as string")
    created_at: datetime = Field(default_factory=utcnow)
