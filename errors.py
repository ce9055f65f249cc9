"""
Error types raised by the directory services.

Routes translate these into the JSON envelope in main.py; anything else
that escapes a handler is an infrastructure failure and becomes a 500.
"""
from typing import Dict, List, Optional


class DirectoryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(DirectoryError):
    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.details = details or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls(message, [{"field": field, "message": message}])


class Unauthorized(DirectoryError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(DirectoryError):
    status_code = 404


class Conflict(DirectoryError):
    status_code = 400


class StoreUnavailable(DirectoryError):
    status_code = 500

    def __init__(self, message: str = "Database not available"):
        super().__init__(message)


class ImageHostError(Exception):
    """Upload to the image host failed or the host is not configured."""
