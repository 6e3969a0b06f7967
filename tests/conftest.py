import io
import os

# Settings are read at import time, so run Celery tasks in-process before
# anything under app/ is imported.
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from PIL import Image


def _make_image_bytes(
    size: tuple[int, int] = (30, 40),
    color=(200, 120, 80),
    fmt: str = "PNG",
    mode: str = "RGB",
) -> bytes:
    img = Image.new(mode, size, color)
    output = io.BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def make_image():
    return _make_image_bytes


@pytest.fixture
def png_bytes() -> bytes:
    return _make_image_bytes()
