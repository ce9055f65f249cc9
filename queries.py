"""
List/search query construction shared by the business list views.
"""
import math
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import BUSINESSES, USERS, id_variants, serialize, to_object_id
from fields import to_public

EXACT_FILTERS = ("category", "province", "city", "area", "status", "source")
SEARCH_FIELDS = ("name", "description", "category", "province", "city", "area")
MAX_LIMIT = 100

# Fields returned by the default list view
LIST_PROJECTION = {f: 1 for f in (
    "businessName", "name", "email", "phone", "website", "address", "city", "province", "area",
    "postalCode", "category", "subCategory", "description", "websiteUrl", "facebookUrl", "gmbUrl",
    "youtubeUrl", "swiftCode", "branchCode", "cityDialingCode", "iban", "status", "featured",
    "featuredAt", "createdAt", "updatedAt", "reviewedBy", "reviewedAt", "rejectionReason",
    "logoUrl", "logoDataUrl", "slug", "createdBy", "source",
)}


def _page_number(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class BusinessQuery(BaseModel):
    category: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    status: Optional[str] = None
    reviewed: Optional[str] = None
    source: Optional[str] = None
    createdBy: Optional[str] = None
    q: Optional[str] = None
    history: bool = False
    page: int = 1
    limit: int = 12

    @field_validator("page", mode="before")
    @classmethod
    def _page(cls, v):
        return max(1, _page_number(v, 1))

    @field_validator("limit", mode="before")
    @classmethod
    def _limit(cls, v):
        return min(MAX_LIMIT, max(1, _page_number(v, 12)))

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def contains(text: str) -> Dict[str, str]:
    """Case-insensitive literal substring match."""
    return {"$regex": re.escape(text), "$options": "i"}


def build_filter(params: BusinessQuery) -> Dict[str, Any]:
    filt: Dict[str, Any] = {}
    for field in EXACT_FILTERS:
        value = getattr(params, field)
        if value:
            filt[field] = value

    if params.reviewed == "reviewed":
        filt["reviewedBy"] = {"$exists": True}
    elif params.reviewed == "not-reviewed":
        filt["reviewedBy"] = {"$exists": False}

    groups: List[Dict[str, Any]] = []
    if params.createdBy:
        groups.append({"$or": [{"createdBy": v} for v in id_variants(params.createdBy)]})
    if params.q and params.q.strip():
        pattern = contains(params.q.strip())
        groups.append({"$or": [{f: pattern} for f in SEARCH_FIELDS]})

    if len(groups) == 1:
        filt.update(groups[0])
    elif groups:
        filt["$and"] = groups
    return filt


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}


def _with_creator_names(db: Database, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    refs = {to_object_id(d.get("createdBy")) for d in docs if d.get("createdBy") is not None}
    refs.discard(None)
    names = {
        u["_id"]: u.get("name")
        for u in db[USERS].find({"_id": {"$in": list(refs)}}, {"name": 1})
    } if refs else {}
    for d in docs:
        d["createdByName"] = names.get(to_object_id(d.get("createdBy")))
    return docs


def list_businesses(db: Database, params: BusinessQuery) -> Dict[str, Any]:
    """
    One page of businesses plus pagination computed from the same filter.

    The history view sorts purely by creation time and adds the creator's
    display name; the default view sorts by status, then newest first.
    """
    filt = build_filter(params)
    collection = db[BUSINESSES]
    if params.history:
        cursor = collection.find(filt).sort("createdAt", DESCENDING)
    else:
        cursor = collection.find(filt, LIST_PROJECTION).sort([("status", ASCENDING), ("createdAt", DESCENDING)])
    docs = list(cursor.skip(params.skip).limit(params.limit))
    if params.history:
        docs = _with_creator_names(db, docs)

    total = collection.count_documents(filt)
    return {
        "businesses": [serialize(d) for d in docs],
        "pagination": pagination(params.page, params.limit, total),
    }


def featured_businesses(db: Database, limit: int = 8) -> List[Dict[str, Any]]:
    projection = {f: 1 for f in (
        "name", "businessName", "category", "city", "logoUrl", "logoDataUrl",
        "featured", "featuredAt", "createdAt", "slug",
    )}
    cursor = db[BUSINESSES].find({"featured": True, "status": "approved"}, projection)
    return [serialize(d) for d in cursor.sort("featuredAt", DESCENDING).limit(limit)]


def public_businesses(db: Database, page: Any = 1, limit: Any = 10, search: str = "",
                      city: str = "", category: str = "") -> Dict[str, Any]:
    """Approved listings in the legacy public contract."""
    page = max(1, _page_number(page, 1))
    limit = min(MAX_LIMIT, max(1, _page_number(limit, 10)))
    search, city, category = (search or "").strip(), (city or "").strip(), (category or "").strip()

    filt: Dict[str, Any] = {"status": "approved"}
    if search:
        pattern = contains(search)
        filt["$or"] = [{f: pattern} for f in (
            "name", "businessName", "contactPerson", "contactPersonName",
            "description", "address", "city", "category",
        )]
    if city:
        filt["city"] = {"$regex": f"^{re.escape(city)}$", "$options": "i"}
    if category:
        filt["category"] = {"$regex": f"^{re.escape(category)}$", "$options": "i"}

    collection = db[BUSINESSES]
    total = collection.count_documents(filt)
    docs = collection.find(filt).sort("createdAt", DESCENDING).skip((page - 1) * limit).limit(limit)
    return {
        "businesses": [to_public(d) for d in docs],
        "pagination": pagination(page, limit, total),
    }
