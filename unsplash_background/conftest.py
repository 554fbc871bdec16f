"""
conftest.py

Test configuration for unsplash_background tests.

Defines Pytest fixtures for supplying test data to tests across the entire
test suite. Fixtures used within only a single module are defined
directly in that module. Conftest.py should only be used for universal
fixtures.
"""

import io

import pytest
import requests
from PIL import Image

from unsplash_background.config import UnsplashConfig
from unsplash_background.image_handler import ImageHandle


@pytest.fixture(scope="session")
def jpeg_bytes() -> bytes:
    """
    A tiny but valid JPEG payload. Generated instead of read from disk so the suite needs no test
    data folder.
    """

    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(30, 120, 200)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path) -> UnsplashConfig:
    """Default configuration, except that image payloads are written to the test's tmp_path."""

    return UnsplashConfig(MEDIA_DIR=tmp_path / "media")


@pytest.fixture
def make_response():
    """
    Return a factory for real requests.Response objects. Using the real class rather than a
    MagicMock keeps raise_for_status(), json() and headers behaving exactly as in production.
    """

    def inner(
        content: bytes = b"",
        url: str = "https://images.unsplash.com/photo-1558328511-7d6490908755",
        status_code: int = 200,
        content_type: str = "image/jpeg",
    ) -> requests.Response:

        response = requests.Response()
        response._content = content
        response.status_code = status_code
        response.url = url
        response.headers["Content-Type"] = content_type
        return response

    return inner


@pytest.fixture
def make_handle(tmp_path, jpeg_bytes):
    """Return a factory for image handles backed by real files in tmp_path."""

    counter = iter(range(1_000_000))

    def inner(name: str = None) -> ImageHandle:

        name = name or f"photo-{next(counter)}"
        path = tmp_path / f"{name}.jpeg"
        path.write_bytes(jpeg_bytes)
        return ImageHandle(
            source_url=f"https://images.unsplash.com/{name}", path=path, format="JPEG"
        )

    return inner
