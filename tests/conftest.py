import io
import os
import sys

import pytest
from PIL import Image

# Ensure project root is importable during tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from screenshot_analyzer.config import Settings


def image_bytes(w=40, h=30, color=(200, 30, 30), fmt="PNG", mode="RGB"):
    if mode == "RGBA":
        color = tuple(color) + (255,) if len(color) == 3 else color
    img = Image.new(mode, (w, h), color=color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture(name="image_bytes")
def image_bytes_fixture():
    return image_bytes


@pytest.fixture
def make_image():
    """Write a solid-colour image file and return its path."""

    def _make(path, w=40, h=30, color=(200, 30, 30), mode="RGB"):
        fmt = "JPEG" if str(path).lower().endswith((".jpg", ".jpeg")) else "PNG"
        os.makedirs(os.path.dirname(str(path)), exist_ok=True)
        with open(path, "wb") as f:
            f.write(image_bytes(w, h, color, fmt, mode))
        return str(path)

    return _make


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key="test-key",
        base_url=None,
        model="gpt-4o",
        timeout=5,
        max_tokens=1000,
        max_retries=3,
        retry_initial_delay_ms=1000,
        retry_max_delay_ms=30000,
        prompt_file=None,
        images_dir=str(tmp_path / "images"),
        data_dir=str(tmp_path / "data"),
    )


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture(autouse=True)
def no_debug_env(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("IMAGE_DEBUG", raising=False)
    yield
