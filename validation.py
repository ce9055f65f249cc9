"""Submission validation shared by the public form and admin flows."""
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError

from errors import ValidationFailed
from fields import BANK_FIELDS
from schemas import BusinessSubmission

LABELS = {
    "name": "Name",
    "category": "Category",
    "province": "Province",
    "city": "City",
    "postalCode": "Postal code",
    "address": "Address",
    "phone": "Phone",
    "email": "Email",
    "description": "Description",
    "swiftCode": "Swift Code",
    "branchCode": "Branch Code",
    "cityDialingCode": "City Dialing Code",
    "iban": "IBAN",
}


def is_bank(category: Any) -> bool:
    return str(category or "").strip().lower() == "bank"


def bank_errors(fields: Mapping[str, Any]) -> List[Dict[str, str]]:
    """Missing banking fields, only when the category is Bank."""
    if not is_bank(fields.get("category")):
        return []
    return [
        {"field": f, "message": f"{LABELS[f]} is required for Bank"}
        for f in BANK_FIELDS
        if not str(fields.get(f) or "").strip()
    ]


def _message(field: str, error: Dict[str, Any]) -> str:
    kind = error.get("type", "")
    if field == "email" and kind != "missing":
        return "Invalid email address"
    if kind in ("missing", "string_too_short"):
        return f"{LABELS.get(field, field)} is required"
    return error.get("msg", "Invalid value")


def validate_submission(fields: Mapping[str, Any]) -> BusinessSubmission:
    """
    Validate normalized fields and return the typed submission.

    Every violation is reported, banking ones included, in a single
    ValidationFailed.
    """
    details: List[Dict[str, str]] = []
    submission = None
    try:
        submission = BusinessSubmission(**fields)
    except ValidationError as exc:
        for error in exc.errors():
            field = str(error["loc"][0]) if error.get("loc") else "__root__"
            details.append({"field": field, "message": _message(field, error)})

    details.extend(bank_errors(fields))
    if details:
        raise ValidationFailed("Validation failed", details)
    return submission
