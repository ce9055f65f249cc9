"""Cloudinary client used for business logos and category images."""
import io
import re
from typing import NamedTuple

import cloudinary
import cloudinary.uploader
from loguru import logger

from config import settings
from errors import ImageHostError

_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


class HostedImage(NamedTuple):
    url: str
    public_id: str


class ImageHost:
    """Uploads images to Cloudinary with a square, format-optimized transformation."""

    def __init__(self, cloud_name=None, api_key=None, api_secret=None):
        if cloud_name and api_key and api_secret:
            cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    @property
    def configured(self) -> bool:
        cfg = cloudinary.config()
        return bool(getattr(cfg, "cloud_name", None) and getattr(cfg, "api_key", None))

    def upload(self, data: bytes, folder: str, size: int) -> HostedImage:
        if not self.configured:
            raise ImageHostError("Cloudinary is not configured")
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                folder=folder,
                resource_type="image",
                transformation=[{
                    "quality": "auto",
                    "fetch_format": "auto",
                    "width": size,
                    "height": size,
                    "crop": "fit",
                }],
            )
        except Exception as e:
            logger.warning(f"Cloudinary upload to {folder} failed: {e}")
            raise ImageHostError(str(e)) from e

        url = result.get("secure_url") or ""
        if not _HTTP_URL.match(url):
            raise ImageHostError(f"Cloudinary returned an unusable URL: {url!r}")
        return HostedImage(url=url, public_id=result.get("public_id", ""))


image_host = ImageHost(
    settings.cloudinary_cloud_name,
    settings.cloudinary_api_key,
    settings.cloudinary_api_secret,
)


def get_image_host() -> ImageHost:
    return image_host
