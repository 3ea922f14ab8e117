"""
Pytest configuration and fixtures.
"""
import io
import os
import sys
import tempfile

import fitz  # PyMuPDF
import pytest
from PIL import Image, ImageDraw

# Add package root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from esign.config import get_settings
from esign.models import SignatureImage

# US Letter in points
LETTER_WIDTH = 612.0
LETTER_HEIGHT = 792.0


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test with temp files under pytest's tmp_path."""
    monkeypatch.setenv("TEMP_DIR", str(tmp_path / "esign"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


def make_pdf(pages: int = 3, width: float = LETTER_WIDTH, height: float = LETTER_HEIGHT) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((50, 100), f"Test Document page {i + 1}", fontsize=24)
        page.insert_text((50, 150), "This is a test PDF for signing.", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def make_png(width: int = 120, height: int = 40, color=(31, 41, 55, 255)) -> bytes:
    img = Image.new("RGBA", (width, height), (255, 255, 255, 0))
    draw = ImageDraw.Draw(img)
    draw.line([(5, height - 5), (width // 2, 5), (width - 5, height - 5)], fill=color, width=3)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def sample_pdf_bytes():
    """Three-page Letter-size PDF."""
    return make_pdf(pages=3)


@pytest.fixture
def sample_jpeg_bytes():
    img = Image.new("RGB", (800, 600), (240, 240, 240))
    ImageDraw.Draw(img).rectangle([100, 100, 700, 500], outline=(0, 0, 0), width=4)
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    return buf.getvalue()


@pytest.fixture
def signature():
    """A valid confirmed signature."""
    return SignatureImage(data=make_png(), width=120, height=40)


@pytest.fixture
def malformed_signature():
    """Signature whose bytes are not an image."""
    return SignatureImage(data=b"\x89PNG\r\n\x1a\nthis is not really a png", width=120, height=40)


@pytest.fixture
def empty_signature():
    return SignatureImage(data=b"", width=0, height=0)
