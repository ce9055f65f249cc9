"""Admin moderation of customer reviews."""
import math
from typing import Any, Dict

from loguru import logger
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from database import REVIEWS, id_variants, now
from errors import NotFound, ValidationFailed
from queries import pagination
from schemas import REVIEW_STATUSES, ReviewUpdate


def _public(doc: Dict[str, Any]) -> Dict[str, Any]:
    business = doc.get("businessId") or doc.get("business_id")
    review_id = str(doc["_id"])
    return {
        "_id": review_id,
        "id": review_id,
        "businessId": str(business) if business is not None else "",
        "name": doc.get("name"),
        "rating": doc.get("rating"),
        "comment": doc.get("comment"),
        "status": doc.get("status") or "visible",
        "createdAt": doc.get("createdAt"),
        "updatedAt": doc.get("updatedAt"),
    }


def _by_id(review_id: str) -> Dict[str, Any]:
    return {"$or": [{"_id": v} for v in id_variants(review_id)]}


def list_reviews(db: Database, business_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    if not business_id:
        raise ValidationFailed.for_field("businessId", "Invalid businessId")
    limit = min(100, max(1, limit))
    variants = id_variants(business_id)
    filt = {"$or": [{field: v} for field in ("businessId", "business_id") for v in variants]}

    collection = db[REVIEWS]
    total = collection.count_documents(filt)
    pages = max(1, -(-total // limit))
    page = min(max(1, page), pages)
    docs = collection.find(filt).sort("createdAt", DESCENDING).skip((page - 1) * limit).limit(limit)
    meta = pagination(page, limit, total)
    meta["pages"] = pages
    return {"reviews": [_public(d) for d in docs], "pagination": meta}


def update_review(db: Database, review_id: str, body: ReviewUpdate) -> Dict[str, Any]:
    update: Dict[str, Any] = {}
    if body.name is not None:
        update["name"] = body.name.strip()
    if body.comment is not None:
        update["comment"] = body.comment.strip()
    if body.rating is not None:
        if not math.isfinite(body.rating):
            raise ValidationFailed.for_field("rating", "Rating must be a number")
        update["rating"] = int(max(1, min(5, round(body.rating))))
    if body.status is not None:
        if body.status not in REVIEW_STATUSES:
            raise ValidationFailed.for_field("status", "Invalid review status")
        update["status"] = body.status
    if not update:
        raise ValidationFailed("No fields to update")

    update["updatedAt"] = now()
    doc = db[REVIEWS].find_one_and_update(_by_id(review_id), {"$set": update},
                                          return_document=ReturnDocument.AFTER)
    if not doc:
        raise NotFound("Review not found")
    logger.info(f"Review {review_id} updated: {sorted(update)}")
    return _public(doc)


def delete_review(db: Database, review_id: str) -> None:
    result = db[REVIEWS].delete_one(_by_id(review_id))
    if result.deleted_count == 0:
        raise NotFound("Review not found")
    logger.info(f"Review {review_id} deleted")
