"""
Business submission and editing.

Both the public form and authenticated admins go through create_business;
only the resulting status and source differ.
"""
from typing import Any, Dict, List, Optional

from loguru import logger
from pymongo.database import Database

from categories import record_business_created
from database import BUSINESSES, create_document, now, serialize, to_object_id
from errors import NotFound, ValidationFailed
from fields import canonical_view, normalize_fields, with_aliases
from images import ImageHost
from logos import ingest_logo, logo_update
from payloads import FieldUpdate, LogoSource, Submission
from schemas import Business
from security import Identity
from slugs import unique_slug
from validation import validate_submission


def _check(fields: Dict[str, Any], logo: LogoSource):
    """Validate fields and logo together so every problem is reported at once."""
    details: List[Dict[str, str]] = []
    submission = image = None
    try:
        submission = validate_submission(fields)
    except ValidationFailed as e:
        details.extend(e.details)
    try:
        image = logo.resolve()
    except ValidationFailed as e:
        details.extend(e.details)
    if details:
        raise ValidationFailed("Validation failed", details)
    return submission, image


def _creator_ref(identity: Optional[Identity]):
    if identity is None:
        return None
    return to_object_id(identity.id) or identity.id


def create_business(db: Database, host: ImageHost, payload: Submission,
                    identity: Optional[Identity] = None) -> Dict[str, Any]:
    fields = normalize_fields(payload.fields)
    submission, image = _check(fields, payload.logo)

    is_admin = identity is not None and identity.is_admin
    logo: Dict[str, str] = ingest_logo(host, image) if image else {}
    business = Business(
        **submission.model_dump(exclude_none=True),
        **logo,
        slug=unique_slug(db[BUSINESSES], submission.name),
        status="approved" if is_admin else "pending",
        source="admin" if is_admin else "frontend",
    )
    doc = with_aliases(business.model_dump(exclude_none=True))
    creator = _creator_ref(identity)
    if creator is not None:
        doc["createdBy"] = creator

    business_id = create_document(db, BUSINESSES, doc)
    logger.info(f"Business {business.slug} created ({business.status}, source={business.source})")
    record_business_created(db, business.category, business.subCategory)
    return serialize(db[BUSINESSES].find_one({"_id": to_object_id(business_id)}))


def find_business(db: Database, business_id: Optional[str] = None,
                  slug: Optional[str] = None) -> Dict[str, Any]:
    """Fetch by slug, or by id; an id that is not an ObjectId is tried as a slug."""
    doc = None
    if slug:
        doc = db[BUSINESSES].find_one({"slug": slug})
    elif business_id:
        oid = to_object_id(business_id)
        query = {"_id": oid} if oid is not None else {"slug": business_id}
        doc = db[BUSINESSES].find_one(query)
    if not doc:
        raise NotFound("Business not found")
    return serialize(doc)


def _require(db: Database, business_id: str) -> Dict[str, Any]:
    oid = to_object_id(business_id)
    doc = db[BUSINESSES].find_one({"_id": oid}) if oid is not None else None
    if not doc:
        raise NotFound("Business not found")
    return doc


def update_fields(db: Database, host: ImageHost, business_id: str, update: FieldUpdate) -> Dict[str, Any]:
    """
    Apply a partial edit. The merged record must still pass submission
    validation. Category counters are not adjusted when the category changes.
    """
    existing = _require(db, business_id)
    fields = normalize_fields(update.fields)
    merged = {**canonical_view(existing), **fields}
    _, image = _check(merged, update.logo)

    changes: Dict[str, Any] = with_aliases(fields)
    unset: Dict[str, str] = {}
    if image is not None:
        logo_set, unset = logo_update(ingest_logo(host, image))
        changes.update(logo_set)
    if update.renameSlug and "name" in fields:
        slug = unique_slug(db[BUSINESSES], fields["name"], exclude_id=existing["_id"])
        if slug != existing.get("slug"):
            changes["slug"] = slug
    changes["updatedAt"] = now()

    ops: Dict[str, Any] = {"$set": changes}
    if unset:
        ops["$unset"] = unset
    db[BUSINESSES].update_one({"_id": existing["_id"]}, ops)
    logger.info(f"Business {existing.get('slug')} fields updated: {sorted(fields)}")
    return serialize(db[BUSINESSES].find_one({"_id": existing["_id"]}))

