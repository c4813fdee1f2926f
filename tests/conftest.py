# tests/conftest.py
import os
import tempfile
from io import BytesIO

# Settings are read at import time, keep test runs out of the working tree
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="imagepack-tests-"))

import pytest
from PIL import Image, ImageDraw

from imagepack.api.deps import get_batch_storage, get_expiry_worker
from imagepack.main import app
from imagepack.services.expiry import ExpiryWorker
from imagepack.services.storage import BatchStorage


def make_image_bytes(size=(2000, 1500), fmt="JPEG", mode="RGB", **save_kwargs) -> bytes:
    """Render a simple test pattern and encode it"""
    color = (0, 0, 0, 0) if mode == "RGBA" else "white"
    image = Image.new(mode, size, color=color)
    draw = ImageDraw.Draw(image)
    width, height = size
    for i in range(20):
        x, y = (i * width) // 20, (i * height) // 20
        fill = (i * 12 % 256, i * 7 % 256, 255 - i * 11 % 256)
        if mode == "RGBA":
            fill = fill + (200,)
        draw.rectangle([x, y, x + width // 10, y + height // 10], fill=fill)
    buffer = BytesIO()
    image.save(buffer, fmt, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes(fmt="JPEG", quality=95)


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes(size=(800, 600), fmt="PNG", mode="RGBA")


@pytest.fixture
def storage(tmp_path) -> BatchStorage:
    return BatchStorage(tmp_path / "batches")


@pytest.fixture
def expiry_worker(storage) -> ExpiryWorker:
    return ExpiryWorker(remove=storage.remove)


@pytest.fixture(autouse=True)
def override_storage(storage, expiry_worker):
    """Point the API at per-test storage"""
    app.dependency_overrides[get_batch_storage] = lambda: storage
    app.dependency_overrides[get_expiry_worker] = lambda: expiry_worker
    yield
    app.dependency_overrides.clear()
