"""
MongoDB connection and document helpers.

`db` is None when DATABASE_URL is not configured; callers check for that.
"""

from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient

import settings

client = MongoClient(settings.DATABASE_URL) if settings.DATABASE_URL else None
db = client[settings.DATABASE_NAME] if client is not None else None


def as_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    out = {**doc}
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    # Convert any ObjectIds inside document
    for k, v in list(out.items()):
        if isinstance(v, ObjectId):
            out[k] = str(v)
    return out
