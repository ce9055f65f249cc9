"""
Database access for the directory.

One MongoDB database holds four collections: businesses, categories,
reviews and users (plus sessions for bearer tokens).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from loguru import logger
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from config import settings
from errors import StoreUnavailable

BUSINESSES = "businesses"
CATEGORIES = "categories"
REVIEWS = "reviews"
USERS = "users"
SESSIONS = "sessions"

client: Optional[MongoClient] = MongoClient(settings.database_url) if settings.database_url else None
db: Optional[Database] = client[settings.database_name] if client is not None else None

_indexes_ensured = False


def get_db() -> Database:
    if db is None:
        raise StoreUnavailable()
    return db


def ensure_indexes(database: Database) -> None:
    """Create the collection indexes once per process."""
    global _indexes_ensured
    if _indexes_ensured:
        return

    businesses = database[BUSINESSES]
    businesses.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
    businesses.create_index("slug", unique=True, sparse=True)
    businesses.create_index([("featured", ASCENDING), ("status", ASCENDING), ("featuredAt", DESCENDING)])
    businesses.create_index([("status", ASCENDING), ("reviewedBy", ASCENDING)])
    businesses.create_index([("createdBy", ASCENDING), ("status", ASCENDING)])
    businesses.create_index([("reviewedAt", DESCENDING)])
    businesses.create_index([("category", ASCENDING), ("city", ASCENDING)])

    database[CATEGORIES].create_index("slug", unique=True)
    database[USERS].create_index("email", unique=True)
    database[SESSIONS].create_index("token_hash", unique=True)
    database[SESSIONS].create_index("expires_at", expireAfterSeconds=0)

    _indexes_ensured = True
    logger.info("Database indexes ensured")


def now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # pymongo hands back naive UTC datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def id_variants(value: Any) -> List[Any]:
    """Both stored forms of a reference: typed ObjectId and plain string."""
    oid = to_object_id(value)
    variants: List[Any] = [oid] if oid is not None else []
    variants.append(str(value))
    return variants


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_none=True)
    doc = dict(data)
    stamp = now()
    doc.setdefault("createdAt", stamp)
    doc["updatedAt"] = stamp
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    out = _plain(dict(doc))
    if "_id" in out:
        out["id"] = out.pop("_id")
    return out
