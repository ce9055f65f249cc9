"""Admin-only user management."""
from typing import Any, Dict, List

from loguru import logger
from pydantic import EmailStr, TypeAdapter, ValidationError
from pymongo.database import Database

from database import BUSINESSES, SESSIONS, USERS, create_document, id_variants, now, serialize, to_object_id
from errors import Conflict, NotFound, ValidationFailed
from schemas import ROLES, User, UserCreate, UserUpdate
from security import Identity, hash_password


def list_users(db: Database) -> List[Dict[str, Any]]:
    out = []
    for user in db[USERS].find({}, {"password": 0}):
        count = db[BUSINESSES].count_documents({
            "$or": [{"createdBy": v} for v in id_variants(user["_id"])],
        })
        doc = serialize(user)
        doc["businessCount"] = count
        out.append(doc)
    return out


_EMAIL = TypeAdapter(EmailStr)


def _check_email(email: str) -> str:
    try:
        return _EMAIL.validate_python(email.strip())
    except ValidationError:
        raise ValidationFailed.for_field("email", "Invalid email address") from None


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise ValidationFailed.for_field("role", "Role must be admin or user")


def create_user(db: Database, body: UserCreate, admin: Identity) -> str:
    if not body.name or not body.email or not body.password:
        raise ValidationFailed("All fields are required")
    role = body.role or "user"
    _check_role(role)
    email = _check_email(body.email)
    if db[USERS].find_one({"email": email}):
        raise Conflict("User with this email already exists")
    user = User(name=body.name.strip(), email=email, password=hash_password(body.password),
                role=role, createdBy=admin.id)
    user_id = create_document(db, USERS, user)
    logger.info(f"User {email} ({role}) created by {admin.email}")
    return user_id


def update_user(db: Database, user_id: str, body: UserUpdate) -> None:
    oid = to_object_id(user_id)
    if oid is None or not db[USERS].find_one({"_id": oid}):
        raise NotFound("User not found")
    changes: Dict[str, Any] = {}
    if body.name is not None:
        changes["name"] = body.name.strip()
    if body.email is not None:
        email = _check_email(body.email)
        if db[USERS].find_one({"email": email, "_id": {"$ne": oid}}):
            raise Conflict("User with this email already exists")
        changes["email"] = email
    if body.role is not None:
        _check_role(body.role)
        changes["role"] = body.role
    if changes:
        # live sessions carry a copy of the identity
        db[SESSIONS].update_many({"user_id": str(oid)}, {"$set": changes})
    changes["updatedAt"] = now()
    db[USERS].update_one({"_id": oid}, {"$set": changes})


def delete_user(db: Database, user_id: str) -> None:
    oid = to_object_id(user_id)
    result = db[USERS].delete_one({"_id": oid}) if oid is not None else None
    if result is None or result.deleted_count == 0:
        raise NotFound("User not found")
    db[SESSIONS].delete_many({"user_id": str(oid)})
    logger.info(f"User {user_id} deleted")
