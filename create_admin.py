"""Seed an admin account."""
import argparse
import sys

from loguru import logger

from database import USERS, create_document, ensure_indexes, get_db, get_documents
from errors import StoreUnavailable
from schemas import User
from security import hash_password


def create_admin(db, email: str, password: str, name: str = "Administrator") -> bool:
    """Insert an admin user unless the email is taken. Returns True if created."""
    if get_documents(db, USERS, {"email": email}, limit=1):
        logger.info(f"Admin user {email} already exists")
        return False
    create_document(db, USERS, User(name=name, email=email, password=hash_password(password), role="admin"))
    logger.info(f"Admin user {email} created")
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args(argv)

    try:
        db = get_db()
    except StoreUnavailable:
        logger.error("DATABASE_URL is not set")
        return 1
    ensure_indexes(db)
    create_admin(db, args.email, args.password, args.name)
    return 0


if __name__ == "__main__":
    sys.exit(main())
