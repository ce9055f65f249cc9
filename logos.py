"""
Logo ingestion.

A logo arrives either as a base64 data URL or as an uploaded file. It is
pushed to the image host; when the host is unconfigured or fails, the data
URL itself is stored instead. A business keeps exactly one of the hosted
URL or the inline data.
"""
import base64
import binascii
import re
from typing import Dict, NamedTuple, Optional, Tuple

from loguru import logger

from errors import ImageHostError, ValidationFailed
from images import ImageHost

LOGO_FOLDER = "citation/business-logos"
LOGO_SIZE = 200
CATEGORY_IMAGE_FOLDER = "citation/category-images"
CATEGORY_IMAGE_SIZE = 300

LOGO_FIELDS = ("logoUrl", "logoPublicId", "logoDataUrl")

_DATA_URL = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


class ImagePayload(NamedTuple):
    content: bytes
    content_type: str
    data_url: str


def parse_data_url(data_url: str, max_chars: int, field: str = "logoDataUrl") -> ImagePayload:
    if len(data_url) > max_chars:
        raise ValidationFailed.for_field(field, f"Image is too large (max {max_chars} characters)")
    match = _DATA_URL.match(data_url)
    if not match:
        raise ValidationFailed.for_field(field, "Image must be a base64 image data URL")
    try:
        content = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailed.for_field(field, "Image data is not valid base64") from None
    return ImagePayload(content, match.group(1), data_url)


def parse_file(content: bytes, content_type: Optional[str], max_chars: int,
               field: str = "logoFile") -> ImagePayload:
    if len(content) > max_chars * 3 // 4:
        raise ValidationFailed.for_field(field, "Image file is too large")
    content_type = content_type or "application/octet-stream"
    if not content_type.startswith("image/"):
        raise ValidationFailed.for_field(field, "Uploaded file must be an image")
    encoded = base64.b64encode(content).decode("ascii")
    return ImagePayload(content, content_type, f"data:{content_type};base64,{encoded}")


def store_image(host: ImageHost, image: ImagePayload, folder: str, size: int) -> Tuple[str, Optional[str]]:
    """Hosted (url, public_id) or, on any host failure, (data_url, None)."""
    if not host.configured:
        logger.warning("Image host not configured; keeping inline image data")
        return image.data_url, None
    try:
        hosted = host.upload(image.content, folder, size)
    except ImageHostError as e:
        logger.warning(f"Image upload failed, keeping inline image data: {e}")
        return image.data_url, None
    return hosted.url, hosted.public_id


def ingest_logo(host: ImageHost, image: ImagePayload) -> Dict[str, str]:
    """Logo fields to persist: either logoUrl/logoPublicId or logoDataUrl."""
    url, public_id = store_image(host, image, LOGO_FOLDER, LOGO_SIZE)
    if public_id is None:
        return {"logoDataUrl": url}
    logger.info(f"Logo uploaded to image host as {public_id}")
    return {"logoUrl": url, "logoPublicId": public_id}


def logo_update(stored: Dict[str, str]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """$set and $unset documents that replace whatever logo a business had."""
    unset = {f: "" for f in LOGO_FIELDS if f not in stored}
    return dict(stored), unset
