from types import SimpleNamespace

import cloudinary
import cloudinary.uploader
import pytest
from cloudinary.exceptions import Error as CloudinaryError

from errors import ImageHostError
from images import ImageHost


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(cloudinary, "config", lambda **kwargs: SimpleNamespace(cloud_name="demo", api_key="key"))


def test_unconfigured_host_refuses_uploads(monkeypatch):
    monkeypatch.setattr(cloudinary, "config", lambda **kwargs: SimpleNamespace(cloud_name=None, api_key=None))
    host = ImageHost()
    assert host.configured is False
    with pytest.raises(ImageHostError):
        host.upload(b"png", "citation/business-logos", 200)


def test_upload_requests_square_fit(configured, monkeypatch):
    calls = []

    def upload(file, **options):
        calls.append(options)
        return {"secure_url": "https://res.cloudinary.com/demo/logo.png", "public_id": "citation/business-logos/abc"}

    monkeypatch.setattr(cloudinary.uploader, "upload", upload)
    hosted = ImageHost().upload(b"png", "citation/business-logos", 200)
    assert hosted.url == "https://res.cloudinary.com/demo/logo.png"
    assert hosted.public_id == "citation/business-logos/abc"
    assert calls[0]["folder"] == "citation/business-logos"
    assert calls[0]["transformation"][0]["width"] == calls[0]["transformation"][0]["height"] == 200
    assert calls[0]["transformation"][0]["crop"] == "fit"


def test_upload_errors_become_image_host_errors(configured, monkeypatch):
    def upload(file, **options):
        raise CloudinaryError("quota exceeded")

    monkeypatch.setattr(cloudinary.uploader, "upload", upload)
    with pytest.raises(ImageHostError, match="quota exceeded"):
        ImageHost().upload(b"png", "citation/business-logos", 200)


def test_non_http_url_is_rejected(configured, monkeypatch):
    monkeypatch.setattr(cloudinary.uploader, "upload", lambda file, **options: {"secure_url": "ftp://nope"})
    with pytest.raises(ImageHostError):
        ImageHost().upload(b"png", "citation/business-logos", 200)
