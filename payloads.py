"""
Request payload shapes for business writes.

Submissions arrive as JSON or multipart; PATCH bodies carry one of three
mutually exclusive updates. Each is parsed once here into a tagged model so
the services never inspect raw request bodies.
"""
from datetime import datetime
from typing import Any, Dict, Literal, Mapping, Optional, Union

from fastapi import Request
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile

from config import settings
from errors import ValidationFailed
from logos import ImagePayload, parse_data_url, parse_file


class LogoSource(BaseModel):
    data_url: Optional[str] = None
    file_content: Optional[bytes] = None
    file_content_type: Optional[str] = None

    def resolve(self, max_chars: Optional[int] = None) -> Optional[ImagePayload]:
        """Validated image, preferring inline data over a file. None when no logo was sent."""
        max_chars = max_chars or settings.logo_max_chars
        if self.data_url:
            return parse_data_url(self.data_url, max_chars)
        if self.file_content:
            return parse_file(self.file_content, self.file_content_type, max_chars)
        return None


class JsonSubmission(BaseModel):
    kind: Literal["json"] = "json"
    fields: Dict[str, Any] = Field(default_factory=dict)
    logo: LogoSource = Field(default_factory=LogoSource)


class MultipartSubmission(BaseModel):
    kind: Literal["multipart"] = "multipart"
    fields: Dict[str, str] = Field(default_factory=dict)
    logo: LogoSource = Field(default_factory=LogoSource)


Submission = Union[JsonSubmission, MultipartSubmission]


class StatusUpdate(BaseModel):
    kind: Literal["status"] = "status"
    status: str
    rejectionReason: Optional[str] = None


class FeaturedUpdate(BaseModel):
    kind: Literal["featured"] = "featured"
    featured: bool
    featuredAt: Optional[datetime] = None


class FieldUpdate(BaseModel):
    kind: Literal["fields"] = "fields"
    fields: Dict[str, Any] = Field(default_factory=dict)
    logo: LogoSource = Field(default_factory=LogoSource)
    renameSlug: bool = False


BusinessPatch = Union[StatusUpdate, FeaturedUpdate, FieldUpdate]


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _form_part_limit() -> int:
    # inline image fields can be as long as the largest upload ceiling
    return max(settings.logo_max_chars, settings.category_image_max_chars) + 1024


async def read_body(request: Request) -> Dict[str, Any]:
    """JSON or multipart body as a plain dict; files stay as UploadFile values."""
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
        form = await request.form(max_part_size=_form_part_limit())
        return {k: v for k, v in form.items()}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


async def _logo_source(body: Mapping[str, Any]) -> LogoSource:
    upload = body.get("logoFile")
    source = LogoSource(data_url=_text(body.get("logoDataUrl")))
    if isinstance(upload, UploadFile):
        source.file_content = await upload.read()
        source.file_content_type = upload.content_type
    return source


async def read_submission(request: Request) -> Submission:
    body = await read_body(request)
    logo = await _logo_source(body)
    fields = {k: v for k, v in body.items() if k not in ("logoFile", "logoDataUrl")}
    if any(isinstance(v, UploadFile) for v in body.values()) or "multipart" in request.headers.get("content-type", ""):
        return MultipartSubmission(fields={k: v for k, v in fields.items() if isinstance(v, str)}, logo=logo)
    return JsonSubmission(fields=fields, logo=logo)


async def read_patch(request: Request) -> BusinessPatch:
    """
    Pick the update variant by key presence: status, then featured, then
    action=updateFields.
    """
    body = await read_body(request)
    if isinstance(body.get("status"), str):
        return StatusUpdate(status=body["status"], rejectionReason=_text(body.get("rejectionReason")))

    featured = _flag(body.get("featured"))
    if featured is not None:
        featured_at = body.get("featuredAt") or None
        try:
            return FeaturedUpdate(featured=featured, featuredAt=featured_at)
        except ValueError:
            raise ValidationFailed.for_field("featuredAt", "Invalid featuredAt timestamp")

    if body.get("action") == "updateFields":
        logo = await _logo_source(body)
        skip = ("action", "logoFile", "logoDataUrl", "renameSlug")
        fields = {k: v for k, v in body.items() if k not in skip and not isinstance(v, UploadFile)}
        return FieldUpdate(fields=fields, logo=logo, renameSlug=bool(_flag(body.get("renameSlug"))))

    raise ValidationFailed("Invalid request")
