"""
Field mapping between inbound submissions and the canonical business schema.

Public forms post legacy names (businessName, contactPersonName, website,
zipCode); the admin UI posts canonical ones. Both converge here. Writes
carry both names of every aliased field so older readers keep working, and
reads fall back across the pair.
"""
from typing import Any, Dict, Mapping, Optional

# canonical -> legacy
ALIASES: Dict[str, str] = {
    "name": "businessName",
    "contactPerson": "contactPersonName",
    "websiteUrl": "website",
    "postalCode": "zipCode",
}
LEGACY_TO_CANONICAL = {legacy: canonical for canonical, legacy in ALIASES.items()}

CANONICAL_FIELDS = (
    "name",
    "category",
    "subCategory",
    "province",
    "city",
    "area",
    "postalCode",
    "address",
    "phone",
    "whatsapp",
    "email",
    "description",
    "contactPerson",
    "swiftCode",
    "branchCode",
    "cityDialingCode",
    "iban",
    "websiteUrl",
    "facebookUrl",
    "gmbUrl",
    "youtubeUrl",
)

BANK_FIELDS = ("swiftCode", "branchCode", "cityDialingCode", "iban")


def _clean(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def read_field(doc: Mapping[str, Any], field: str) -> Optional[Any]:
    """Value of ``field`` in ``doc``, falling back to its alias."""
    value = doc.get(field)
    if value not in (None, ""):
        return value
    other = ALIASES.get(field) or LEGACY_TO_CANONICAL.get(field)
    if other:
        value = doc.get(other)
        if value not in (None, ""):
            return value
    return None


def normalize_fields(raw: Mapping[str, Any]) -> Dict[str, str]:
    """
    Canonical, trimmed fields from a raw payload.

    Empty values are dropped rather than stored as "". Unknown keys are
    ignored. When both a canonical name and its alias are sent, the
    canonical one wins.
    """
    out: Dict[str, str] = {}
    for field in CANONICAL_FIELDS:
        value = _clean(raw.get(field))
        if value is None and field in ALIASES:
            value = _clean(raw.get(ALIASES[field]))
        if value is not None:
            out[field] = value
    return out


def with_aliases(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of ``fields`` with every aliased canonical value mirrored to its legacy name."""
    out = dict(fields)
    for canonical, legacy in ALIASES.items():
        if canonical in out:
            out[legacy] = out[canonical]
    return out


def canonical_view(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """Canonical fields of a stored document, resolving legacy-only records."""
    out: Dict[str, Any] = {}
    for field in CANONICAL_FIELDS:
        value = read_field(doc, field)
        if value is not None:
            out[field] = value
    return out


def to_public(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """Map a stored business onto the legacy public listing contract."""
    return {
        "id": str(doc.get("_id")) if doc.get("_id") is not None else doc.get("id"),
        "businessName": read_field(doc, "name"),
        "contactPersonName": read_field(doc, "contactPerson"),
        "category": doc.get("category"),
        "city": doc.get("city"),
        "address": doc.get("address"),
        "phone": doc.get("phone"),
        "whatsapp": doc.get("whatsapp"),
        "email": doc.get("email"),
        "website": read_field(doc, "websiteUrl"),
        "description": doc.get("description"),
        "postalCode": read_field(doc, "postalCode"),
        "logoUrl": doc.get("logoUrl"),
        "logoDataUrl": doc.get("logoDataUrl"),
        "createdAt": doc.get("createdAt"),
    }
