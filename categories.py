"""
Categories and their denormalized business counts.

Counts are incremented when a business is created and never decremented;
they drift on delete or rejection and are not a source of truth.
"""
import re
from typing import Any, Dict, List, Optional

from loguru import logger
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import CATEGORIES, now
from errors import Conflict, NotFound, ValidationFailed
from schemas import Category, Subcategory
from slugs import slugify, title_case


def _categories(db: Database):
    return db[CATEGORIES]


def ensure_category(db: Database, slug: str, name: Optional[str] = None) -> None:
    """Create the category record if absent. Safe to repeat."""
    doc = Category(slug=slug, name=name or title_case(slug)).model_dump(exclude_none=True)
    doc.pop("slug")
    doc["createdAt"] = now()
    _categories(db).update_one({"slug": slug}, {"$setOnInsert": doc}, upsert=True)


def ensure_subcategory(db: Database, slug: str, sub_slug: str, name: Optional[str] = None) -> bool:
    """Append a zero-count subcategory unless one with ``sub_slug`` exists. True if appended."""
    sub = Subcategory(slug=sub_slug, name=name or title_case(sub_slug)).model_dump()
    result = _categories(db).update_one(
        {"slug": slug, "subcategories.slug": {"$ne": sub_slug}},
        {"$push": {"subcategories": sub}},
    )
    return result.modified_count > 0


def record_business_created(db: Database, category: str, sub_category: Optional[str] = None) -> None:
    """
    Bump the counters for a newly created business.

    Failures are logged, not raised: the business is already stored.
    """
    slug = slugify(category)
    if not slug:
        logger.warning(f"Category {category!r} has no usable slug; counters not updated")
        return
    try:
        ensure_category(db, slug)
        _categories(db).update_one({"slug": slug}, {"$inc": {"count": 1}})
        if sub_category:
            sub_slug = slugify(sub_category)
            if sub_slug:
                ensure_subcategory(db, slug, sub_slug, title_case(sub_category))
                _categories(db).update_one(
                    {"slug": slug, "subcategories.slug": sub_slug},
                    {"$inc": {"subcategories.$.count": 1}},
                )
    except PyMongoError as e:
        logger.warning(f"Category counter update failed for {slug}: {e}")


def _summary(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "slug": doc.get("slug"),
        "name": doc.get("name") or title_case(str(doc.get("slug") or "")),
        "count": doc.get("count") if isinstance(doc.get("count"), int) else 0,
        "imageUrl": doc.get("imageUrl"),
    }


def _detail(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = _summary(doc)
    out["subcategories"] = [
        {
            "slug": str(s.get("slug") or ""),
            "name": str(s.get("name") or ""),
            "count": s.get("count") if isinstance(s.get("count"), int) else 0,
        }
        for s in doc.get("subcategories") or []
    ]
    return out


def list_categories(db: Database, q: str = "") -> List[Dict[str, Any]]:
    filt: Dict[str, Any] = {}
    if q:
        pattern = {"$regex": re.escape(q), "$options": "i"}
        filt["$or"] = [{"slug": pattern}, {"name": pattern}]
    docs = _categories(db).find(filt).sort([("name", 1), ("slug", 1)])
    return [_summary(d) for d in docs]


def get_category(db: Database, slug: str) -> Optional[Dict[str, Any]]:
    doc = _categories(db).find_one({"slug": slug})
    return _detail(doc) if doc else None


def _require(db: Database, slug: str) -> Dict[str, Any]:
    doc = _categories(db).find_one({"slug": slug})
    if not doc:
        raise NotFound("Category not found")
    return doc


def create_category(db: Database, name: str, image_url: str, image_public_id: Optional[str],
                    sub_name: str = "") -> Dict[str, Any]:
    slug = slugify(name)
    if not slug:
        raise ValidationFailed.for_field("category", "Category is required")
    ensure_category(db, slug)
    _categories(db).update_one(
        {"slug": slug},
        {"$set": {"imageUrl": image_url, "imagePublicId": image_public_id or "inline-data-url"}},
    )
    sub_slug = slugify(sub_name)
    if sub_slug and not ensure_subcategory(db, slug, sub_slug):
        _categories(db).update_one(
            {"slug": slug, "subcategories.slug": sub_slug},
            {"$set": {"subcategories.$.name": title_case(sub_slug)}},
        )
    logger.info(f"Category {slug} saved")
    return get_category(db, slug)


def rename_category(db: Database, slug: str, new_name: str) -> Dict[str, Any]:
    new_slug = slugify(new_name)
    if not new_slug:
        raise ValidationFailed.for_field("newName", "newName is required")
    _require(db, slug)
    if new_slug != slug and _categories(db).find_one({"slug": new_slug}):
        raise Conflict(f"Category {new_slug} already exists")
    _categories(db).update_one({"slug": slug}, {"$set": {"name": new_name.strip(), "slug": new_slug}})
    return get_category(db, new_slug)


def set_category_image(db: Database, slug: str, image_url: str, image_public_id: Optional[str]) -> Dict[str, Any]:
    _require(db, slug)
    _categories(db).update_one(
        {"slug": slug},
        {"$set": {"imageUrl": image_url, "imagePublicId": image_public_id or "inline-data-url"}},
    )
    return get_category(db, slug)


def add_subcategory(db: Database, slug: str, sub_name: str) -> Dict[str, Any]:
    sub_slug = slugify(sub_name)
    if not sub_slug:
        raise ValidationFailed.for_field("subName", "subName is required")
    _require(db, slug)
    ensure_subcategory(db, slug, sub_slug, sub_name.strip())
    return get_category(db, slug)


def rename_subcategory(db: Database, slug: str, sub_slug: str, new_name: str) -> Dict[str, Any]:
    new_sub_slug = slugify(new_name)
    if not sub_slug or not new_sub_slug:
        raise ValidationFailed("subSlug and newName are required")
    if new_sub_slug != sub_slug and _categories(db).find_one({"slug": slug, "subcategories.slug": new_sub_slug}):
        raise Conflict(f"Subcategory {new_sub_slug} already exists")
    doc = _categories(db).find_one_and_update(
        {"slug": slug, "subcategories.slug": sub_slug},
        {"$set": {"subcategories.$.name": new_name.strip(), "subcategories.$.slug": new_sub_slug}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFound("Subcategory not found")
    return _detail(doc)


def delete_subcategory(db: Database, slug: str, sub_slug: str) -> Dict[str, Any]:
    result = _categories(db).update_one({"slug": slug}, {"$pull": {"subcategories": {"slug": sub_slug}}})
    if result.modified_count == 0:
        raise NotFound("Subcategory not found")
    return get_category(db, slug)


def delete_category(db: Database, slug: str) -> None:
    result = _categories(db).delete_one({"slug": slug})
    if result.deleted_count == 0:
        raise NotFound("Category not found")
    logger.info(f"Category {slug} deleted")
