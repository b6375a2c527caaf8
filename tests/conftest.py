import base64
import io
import os
import sys

import pytest
from PIL import Image

# Ensure project root is on PYTHONPATH for tests
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

os.environ.setdefault("GRADIO_BASE_URL", "https://pneumo.test")


@pytest.fixture
def anyio_backend():
    """Configure the async test backend to use asyncio only."""
    return 'asyncio'


def make_png(size=(64, 48), color=(40, 40, 40)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_data_url(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("utf-8")
