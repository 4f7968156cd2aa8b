"""Shared fixtures for Enqor Media tests."""

import io
import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from PIL import Image

from enqor.core.config import MediaConfig


def make_image_bytes(width: int, height: int, fmt: str = "PNG", mode: str = "RGB", color=(200, 30, 60)) -> bytes:
    """Encode a solid-colour image of the given size."""
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 255)
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_noise_bytes(width: int, height: int) -> bytes:
    """PNG of random pixels; compresses badly as JPEG."""
    image = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def media_config(tmp_path):
    """Media config writing file handles into a per-test directory."""
    return MediaConfig(handle_dir=str(tmp_path))


@pytest.fixture
def wide_png():
    return make_image_bytes(400, 200)


@pytest.fixture
def tall_png():
    return make_image_bytes(108, 192)


@pytest.fixture
def square_jpeg():
    return make_image_bytes(300, 300, fmt="JPEG")


@pytest.fixture
def image_bytes():
    """Factory for encoded solid-colour images."""
    return make_image_bytes


@pytest.fixture
def noise_bytes():
    """Factory for hard-to-compress images."""
    return make_noise_bytes
