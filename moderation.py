"""
Moderation of submitted businesses.

Status moves between pending, approved and rejected in any direction; every
move is stamped with the reviewer and time. ``featured`` is independent of
status. Deletion is a hard delete outside the state machine.
"""
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from pymongo import DESCENDING
from pymongo.database import Database

from database import BUSINESSES, USERS, as_utc, now, serialize, to_object_id
from errors import NotFound, ValidationFailed
from payloads import FeaturedUpdate, StatusUpdate
from schemas import BUSINESS_STATUSES
from security import Identity


def _check_status(status: str) -> None:
    if status not in BUSINESS_STATUSES:
        raise ValidationFailed.for_field("status", "Invalid status")


def status_changes(status: str, reviewer: str, rejection_reason: Optional[str] = None) -> Dict[str, Any]:
    """
    Update document for a status transition.

    rejectionReason is only kept on a rejection that supplies one; every other
    transition clears it.
    """
    _check_status(status)
    stamp = now()
    fields: Dict[str, Any] = {
        "status": status,
        "reviewedBy": reviewer,
        "reviewedAt": stamp,
        "updatedAt": stamp,
    }
    reason = (rejection_reason or "").strip()
    if status == "rejected" and reason:
        fields["rejectionReason"] = reason
        return {"$set": fields}
    return {"$set": fields, "$unset": {"rejectionReason": ""}}


def change_status(db: Database, business_id: str, update: StatusUpdate, reviewer: Identity) -> Dict[str, Any]:
    changes = status_changes(update.status, reviewer.email, update.rejectionReason)
    oid = to_object_id(business_id)
    if oid is None:
        raise NotFound("Business not found")

    result = db[BUSINESSES].update_one({"_id": oid}, changes)
    if result.matched_count == 0:
        raise NotFound("Business not found")
    logger.info(f"Business {business_id} set to {update.status} by {reviewer.email}")
    return serialize(db[BUSINESSES].find_one({"_id": oid}))


def set_featured(db: Database, business_id: str, update: FeaturedUpdate) -> Dict[str, Any]:
    """Toggle the featured flag. Repeating the current value changes nothing."""
    oid = to_object_id(business_id)
    doc = db[BUSINESSES].find_one({"_id": oid}) if oid is not None else None
    if not doc:
        raise NotFound("Business not found")
    if bool(doc.get("featured")) == update.featured:
        return serialize(doc)

    stamp = now()
    if update.featured:
        changes = {"$set": {"featured": True, "featuredAt": update.featuredAt or stamp, "updatedAt": stamp}}
    else:
        changes = {"$set": {"featured": False, "updatedAt": stamp}, "$unset": {"featuredAt": ""}}
    db[BUSINESSES].update_one({"_id": oid}, changes)
    logger.info(f"Business {business_id} featured={update.featured}")
    return serialize(db[BUSINESSES].find_one({"_id": oid}))


def bulk_change_status(db: Database, business_ids: Iterable[str], status: str, reviewer: Identity,
                       rejection_reason: Optional[str] = None) -> Dict[str, int]:
    """
    Apply one status to every listed business in a single update_many.
    Ids that do not exist (or are malformed) are skipped, not reported.
    """
    ids = list(business_ids or [])
    if not ids:
        raise ValidationFailed.for_field("businessIds", "Business IDs are required")
    changes = status_changes(status, reviewer.email, rejection_reason)

    oids = [oid for oid in (to_object_id(i) for i in ids) if oid is not None]
    if not oids:
        return {"matchedCount": 0, "modifiedCount": 0}

    result = db[BUSINESSES].update_many({"_id": {"$in": oids}}, changes)
    logger.info(f"Bulk {status} by {reviewer.email}: matched={result.matched_count} modified={result.modified_count}")
    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


def delete_business(db: Database, business_id: str) -> None:
    oid = to_object_id(business_id)
    result = db[BUSINESSES].delete_one({"_id": oid}) if oid is not None else None
    if result is None or result.deleted_count == 0:
        raise NotFound("Business not found")
    logger.info(f"Business {business_id} deleted")


def status_totals(db: Database) -> Dict[str, int]:
    counts = {row["_id"]: row["count"] for row in db[BUSINESSES].aggregate([
        {"$group": {"_id": "$status", "count": {"$sum": 1}}},
    ])}
    return {
        "total": sum(counts.values()),
        "pending": counts.get("pending", 0),
        "approved": counts.get("approved", 0),
        "rejected": counts.get("rejected", 0),
    }


def moderation_stats(db: Database) -> Dict[str, Any]:
    """Status totals plus per-reviewer approved/rejected counts."""
    reviewers: Dict[str, Dict[str, Any]] = {}
    for row in db[BUSINESSES].aggregate([
        {"$match": {"reviewedBy": {"$exists": True, "$ne": None}}},
        {"$group": {"_id": {"reviewer": "$reviewedBy", "status": "$status"}, "count": {"$sum": 1}}},
    ]):
        key = row["_id"]
        entry = reviewers.setdefault(key["reviewer"], {
            "reviewer": key["reviewer"], "totalReviewed": 0, "approved": 0, "rejected": 0,
        })
        entry["totalReviewed"] += row["count"]
        if key.get("status") in ("approved", "rejected"):
            entry[key["status"]] += row["count"]

    return {
        **status_totals(db),
        "reviewerStats": sorted(reviewers.values(), key=lambda r: r["reviewer"]),
    }


RECENT_LIMIT = 5
ACTIVITY_LIMIT = 10
TOP_CONTRIBUTORS = 3


def _title(doc: Dict[str, Any]) -> str:
    return str(doc.get("businessName") or doc.get("name") or "Business")


def recent_activity(db: Database) -> List[Dict[str, Any]]:
    """Latest submissions and review decisions, newest first."""
    collection = db[BUSINESSES]
    projection = {"businessName": 1, "name": 1, "status": 1, "createdAt": 1, "reviewedAt": 1,
                  "rejectionReason": 1}
    events = []
    for doc in collection.find({}, projection).sort("createdAt", DESCENDING).limit(RECENT_LIMIT):
        if doc.get("createdAt"):
            title = _title(doc)
            events.append(("submitted", title, f'"{title}" submitted for review', doc["createdAt"]))

    reviewed = collection.find({"reviewedAt": {"$exists": True}}, projection)
    for doc in reviewed.sort("reviewedAt", DESCENDING).limit(RECENT_LIMIT):
        title = _title(doc)
        if doc.get("status") == "approved":
            events.append(("approved", title, f'"{title}" has been approved and is now live', doc["reviewedAt"]))
        elif doc.get("rejectionReason"):
            events.append(("rejected", title, f"Rejected: {doc['rejectionReason']}", doc["reviewedAt"]))
        else:
            events.append(("rejected", title, f'"{title}" was rejected', doc["reviewedAt"]))

    events.sort(key=lambda e: as_utc(e[3]), reverse=True)
    return [
        {"type": kind, "title": title, "subtitle": subtitle, "at": as_utc(at).isoformat()}
        for kind, title, subtitle, at in events[:ACTIVITY_LIMIT]
    ]


def top_contributors(db: Database, limit: int = TOP_CONTRIBUTORS) -> List[Dict[str, Any]]:
    """
    Users with the most created businesses. References stored as ObjectId
    and as plain string are counted as the same user.
    """
    totals: Dict[str, Dict[str, Any]] = {}
    for row in db[BUSINESSES].aggregate([
        {"$match": {"createdBy": {"$exists": True, "$ne": None}}},
        {"$group": {"_id": {"user": "$createdBy", "status": "$status"}, "count": {"$sum": 1}}},
    ]):
        user_id = str(row["_id"]["user"])
        entry = totals.setdefault(user_id, {
            "id": user_id, "businessCount": 0, "approvedCount": 0, "pendingCount": 0,
        })
        entry["businessCount"] += row["count"]
        status = row["_id"].get("status")
        if status in ("approved", "pending"):
            entry[f"{status}Count"] += row["count"]

    ranked = sorted(totals.values(), key=lambda e: (-e["businessCount"], e["id"]))[:limit]
    oids = [oid for oid in (to_object_id(e["id"]) for e in ranked) if oid is not None]
    users = {
        str(u["_id"]): u for u in db[USERS].find({"_id": {"$in": oids}}, {"name": 1, "email": 1})
    } if oids else {}
    for entry in ranked:
        user = users.get(entry["id"], {})
        entry["name"] = user.get("name") or "Unknown User"
        entry["email"] = user.get("email") or ""
    return ranked


def dashboard(db: Database) -> Dict[str, Any]:
    return {
        "stats": status_totals(db),
        "activities": recent_activity(db),
        "topUsers": top_contributors(db),
    }
