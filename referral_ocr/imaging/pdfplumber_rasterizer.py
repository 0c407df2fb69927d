from pathlib import Path

import pdfplumber

from referral_ocr.imaging.base import BasePageRasterizer
from referral_ocr.imaging.exceptions import ConversionError

_BASE_DPI = 72


class PdfPlumberRasterizer(BasePageRasterizer):
    """Renders PDF pages through pdfplumber's page images."""

    def rasterize(self, pdf_path: Path, target_dir: Path, scale: float) -> list[Path]:
        try:
            pages: list[Path] = []
            with pdfplumber.open(pdf_path) as pdf:
                for index, page in enumerate(pdf.pages):
                    out = target_dir / f"page_{index:04d}.png"
                    page.to_image(resolution=int(_BASE_DPI * scale)).save(out, format="PNG")
                    pages.append(out)
            return pages
        except Exception as exc:
            raise ConversionError(f"pdfplumber rasterization failed: {exc}") from exc
