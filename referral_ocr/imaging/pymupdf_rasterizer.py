from pathlib import Path

import pymupdf

from referral_ocr.imaging.base import BasePageRasterizer
from referral_ocr.imaging.exceptions import ConversionError


class PyMuPdfRasterizer(BasePageRasterizer):
    """Renders PDF pages with PyMuPDF pixmaps."""

    def rasterize(self, pdf_path: Path, target_dir: Path, scale: float) -> list[Path]:
        try:
            pages: list[Path] = []
            matrix = pymupdf.Matrix(scale, scale)
            with pymupdf.open(pdf_path) as doc:  # type: ignore[no-untyped-call]
                for index, page in enumerate(doc):
                    out = target_dir / f"page_{index:04d}.png"
                    page.get_pixmap(matrix=matrix).save(str(out))
                    pages.append(out)
            return pages
        except Exception as exc:
            raise ConversionError(f"pymupdf rasterization failed: {exc}") from exc
