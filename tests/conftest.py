import io
from collections.abc import Callable, Sequence

import pytest
from PIL import Image, ImageDraw
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from referral_ocr.recognition.engine import BaseRecognitionEngine
from referral_ocr.recognition.models import RecognizedPage


class StubEngine(BaseRecognitionEngine):
    """Recognition engine that replays canned pages in call order."""

    def __init__(self, pages: Sequence[tuple[str, float]] = ()) -> None:
        super().__init__()
        self._pages = list(pages)
        self.start_calls = 0
        self.stop_calls = 0
        self.seen_images: list[bytes] = []

    def _start(self) -> None:
        self.start_calls += 1

    def _recognize(self, page_image: bytes) -> RecognizedPage:
        self.seen_images.append(page_image)
        text, confidence = self._pages[len(self.seen_images) - 1]
        return RecognizedPage(text=text, confidence=confidence)

    def _stop(self) -> None:
        self.stop_calls += 1


@pytest.fixture()
def stub_engine_factory() -> Callable[..., StubEngine]:
    return StubEngine


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Referral for Jane Doe")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page referral letter."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Dear Dr. Smith, I am referring Jane Doe")
    c.showPage()
    c.drawString(72, 720, "patient DOB 1980-01-01")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_png_bytes() -> bytes:
    """Generate a small RGB image with dark text-like strokes."""
    image = Image.new("RGB", (200, 80), color=(240, 240, 230))
    draw = ImageDraw.Draw(image)
    draw.text((10, 30), "DOB 1980-01-01", fill=(20, 20, 20))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def sample_jpeg_bytes() -> bytes:
    image = Image.new("RGB", (120, 60), color=(200, 180, 160))
    buf = io.BytesIO()
    image.save(buf, format="JPEG")
    return buf.getvalue()
