"""
Pytest configuration and fixtures for workflow tests
"""
from io import BytesIO

import pytest
from PIL import Image

from removebg_service.config import Settings
from removebg_service.errors import TransferError
from removebg_service.images import UploadedFile


def make_png(size=(8, 6), mode="RGB", color=(200, 30, 30)):
    buf = BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_jpeg(size=(8, 6)):
    buf = BytesIO()
    Image.new("RGB", size, (10, 120, 200)).save(buf, format="JPEG")
    return buf.getvalue()


class FakeRemoveBgClient:
    """Stands in for RemoveBgClient; records calls and replays a canned outcome"""

    def __init__(self, payload=None, error=None):
        self.payload = payload if payload is not None else make_png(mode="RGBA", color=(0, 0, 0, 0))
        self.error = error
        self.calls = []

    def remove_background(self, image_data, filename="image", content_type="application/octet-stream"):
        self.calls.append((image_data, filename, content_type))
        if self.error is not None:
            raise self.error
        return self.payload


class RecordingShareTarget:
    def __init__(self, url="https://share.example/cutout.png", error=None):
        self.url = url
        self.error = error
        self.payloads = []

    def share(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture
def settings(tmp_path):
    return Settings(removebg_api_key="test-key", download_dir=tmp_path / "downloads")


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_upload(png_bytes):
    return UploadedFile(filename="photo.png", content_type="image/png", data=png_bytes)


@pytest.fixture
def fake_client():
    return FakeRemoveBgClient()


@pytest.fixture
def failing_client():
    return FakeRemoveBgClient(error=TransferError("Insufficient credits", status_code=402))
