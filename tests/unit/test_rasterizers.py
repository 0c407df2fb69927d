from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from referral_ocr.imaging.exceptions import ConversionError
from referral_ocr.imaging.factory import RasterizerFactory
from referral_ocr.imaging.pdfplumber_rasterizer import PdfPlumberRasterizer
from referral_ocr.imaging.pymupdf_rasterizer import PyMuPdfRasterizer


@pytest.fixture()
def two_page_pdf(tmp_path: Path, multi_page_pdf_bytes: bytes) -> Path:
    path = tmp_path / "letter.pdf"
    path.write_bytes(multi_page_pdf_bytes)
    return path


class TestPyMuPdfRasterizer:
    def test_renders_every_page_in_order(self, two_page_pdf: Path, tmp_path: Path) -> None:
        out_dir = tmp_path / "pages"
        out_dir.mkdir()

        pages = PyMuPdfRasterizer().rasterize(two_page_pdf, out_dir, 2.0)

        assert [p.name for p in pages] == ["page_0000.png", "page_0001.png"]
        assert all(p.is_file() for p in pages)

    def test_scale_upsamples_from_72_dpi(self, two_page_pdf: Path, tmp_path: Path) -> None:
        pages = PyMuPdfRasterizer().rasterize(two_page_pdf, tmp_path, 2.0)

        with Image.open(pages[0]) as image:
            assert image.size == (1224, 1584)

    def test_broken_pdf_raises(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"not a pdf")

        with pytest.raises(ConversionError, match="pymupdf"):
            PyMuPdfRasterizer().rasterize(broken, tmp_path, 2.0)


class TestPdfPlumberRasterizer:
    def test_renders_every_page(self, two_page_pdf: Path, tmp_path: Path) -> None:
        out_dir = tmp_path / "pages"
        out_dir.mkdir()

        pages = PdfPlumberRasterizer().rasterize(two_page_pdf, out_dir, 2.0)

        assert len(pages) == 2
        assert all(p.is_file() for p in pages)

    def test_broken_pdf_raises(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"not a pdf")

        with pytest.raises(ConversionError, match="pdfplumber"):
            PdfPlumberRasterizer().rasterize(broken, tmp_path, 2.0)


class TestRasterizerFactory:
    def test_creates_pymupdf(self) -> None:
        settings = MagicMock(pdf_engine="pymupdf")
        assert isinstance(RasterizerFactory.create(settings), PyMuPdfRasterizer)

    def test_creates_pdfplumber_case_insensitive(self) -> None:
        settings = MagicMock(pdf_engine="PDFPlumber")
        assert isinstance(RasterizerFactory.create(settings), PdfPlumberRasterizer)

    def test_unknown_engine_raises(self) -> None:
        settings = MagicMock(pdf_engine="ghostscript")
        with pytest.raises(ValueError, match="Unknown PDF engine"):
            RasterizerFactory.create(settings)
