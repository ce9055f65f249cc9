"""URL-safe slugs for businesses and categories."""
import re
import time
import unicodedata
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo.collection import Collection

MAX_SLUG_LENGTH = 120

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def _fold_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def slugify(text: str) -> str:
    """Lowercase, drop anything outside [a-z0-9 -], hyphenate whitespace runs."""
    s = _fold_accents(text or "").lower().strip()
    s = _DISALLOWED.sub("", s)
    s = _WHITESPACE.sub("-", s)
    return _HYPHENS.sub("-", s).strip("-")


def title_case(slug: str) -> str:
    words = re.sub(r"[-_]+", " ", slug or "").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def base_slug(name: str) -> str:
    s = slugify(name)[:MAX_SLUG_LENGTH].strip("-")
    return s or f"business-{int(time.time() * 1000)}"


def unique_slug(collection: Collection, name: str, exclude_id: Optional[ObjectId] = None) -> str:
    """
    Derive a slug from ``name`` that no document in ``collection`` uses yet.

    Collisions get ``-1``, ``-2``... appended, trimming the base so the result
    stays within MAX_SLUG_LENGTH. The check and the later insert are not
    atomic; two identical concurrent submissions can still collide, in which
    case the unique slug index rejects the second insert. A document passed as
    ``exclude_id`` does not count as a collision, so a record can keep its own slug.
    """
    base = base_slug(name)
    candidate = base
    attempt = 0
    taken: Dict[str, Any] = {"_id": {"$ne": exclude_id}} if exclude_id is not None else {}
    while collection.find_one({**taken, "slug": candidate}, {"_id": 1}) is not None:
        attempt += 1
        suffix = f"-{attempt}"
        candidate = base[:MAX_SLUG_LENGTH - len(suffix)].rstrip("-") + suffix
    return candidate
