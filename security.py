# security.py
import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends, Request
from loguru import logger
from pydantic import BaseModel
from pymongo.database import Database

from config import settings
from database import SESSIONS, USERS, as_utc, get_db, now
from errors import Unauthorized

COOKIE_NAME = "admin-token"


class Identity(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def new_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def expires_in_hours(hours: int) -> datetime:
    return now() + timedelta(hours=hours)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def login(db: Database, email: str, password: str) -> Dict[str, Any]:
    user = db[USERS].find_one({"email": (email or "").strip()})
    if not user or not check_password(password or "", user.get("password", "")):
        logger.warning(f"Failed login for {email!r}")
        raise Unauthorized("Invalid credentials")

    db[USERS].update_one({"_id": user["_id"]}, {"$set": {"lastLogin": now()}})
    identity = Identity(id=str(user["_id"]), email=user["email"], name=user.get("name"),
                        role=user.get("role", "user"))
    token = new_token()
    db[SESSIONS].insert_one({
        "token_hash": hash_token(token),
        "user_id": identity.id,
        "email": identity.email,
        "name": identity.name,
        "role": identity.role,
        "expires_at": expires_in_hours(settings.session_hours),
        "createdAt": now(),
    })
    logger.info(f"User {identity.email} logged in")
    return {"token": token, "user": identity.model_dump()}


def logout(db: Database, token: str) -> None:
    db[SESSIONS].delete_one({"token_hash": hash_token(token)})


def authenticate(db: Database, token: Optional[str]) -> Optional[Identity]:
    """Identity behind a bearer token, or None if it is unknown or expired."""
    if not token:
        return None
    session = db[SESSIONS].find_one({"token_hash": hash_token(token)})
    if not session or as_utc(session["expires_at"]) < now():
        return None
    return Identity(id=session["user_id"], email=session["email"], name=session.get("name"),
                    role=session.get("role", "user"))


def token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get(COOKIE_NAME)


def get_identity(request: Request, db: Database = Depends(get_db)) -> Optional[Identity]:
    return authenticate(db, token_from_request(request))


def require_admin(identity: Optional[Identity] = Depends(get_identity)) -> Identity:
    if identity is None or not identity.is_admin:
        raise Unauthorized()
    return identity
