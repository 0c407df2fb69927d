"""Turns an uploaded scan into enhanced page images ready for recognition."""

import tempfile
from pathlib import Path

from referral_ocr.imaging.base import BasePageRasterizer
from referral_ocr.imaging.enhancer import ImageEnhancer
from referral_ocr.imaging.exceptions import ConversionError
from referral_ocr.logging.logger import Log

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = frozenset({
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/tiff",
    "image/bmp",
    "image/gif",
    "image/webp",
})


class InputNormalizer:
    """Converts a PDF or raster upload into an ordered list of page PNGs."""

    def __init__(
        self,
        rasterizer: BasePageRasterizer,
        enhancer: ImageEnhancer | None = None,
        render_scale: float = 2.0,
    ) -> None:
        if render_scale < 2.0:
            raise ValueError("render_scale must be at least 2.0")
        self._rasterizer = rasterizer
        self._enhancer = enhancer if enhancer is not None else ImageEnhancer()
        self._render_scale = render_scale

    def normalize(self, path: Path, mime_type: str) -> list[bytes]:
        """Produce enhanced page images in page order.

        Raises:
            ConversionError: on unsupported input or any rasterization/decoding failure.
        """
        if not path.is_file():
            raise ConversionError(f"Input file not found: {path}")

        mime = mime_type.split(";", 1)[0].strip().lower()
        if mime == PDF_MIME_TYPE:
            pages = self._normalize_pdf(path)
        elif mime in IMAGE_MIME_TYPES:
            pages = [self._enhancer.enhance(path)]
        else:
            raise ConversionError(f"Unsupported MIME type '{mime_type}'")

        Log.info(f"Normalized {path.name} into {len(pages)} page image(s)")
        return pages

    def _normalize_pdf(self, path: Path) -> list[bytes]:
        # Page files never outlive this call, whether rendering succeeds or not.
        with tempfile.TemporaryDirectory(prefix="referral-ocr-") as tmp:
            page_paths = self._rasterizer.rasterize(path, Path(tmp), self._render_scale)
            if not page_paths:
                raise ConversionError(f"PDF {path.name} has no pages")
            Log.debug(f"Rasterized {len(page_paths)} page(s) into {tmp}")
            return [self._enhancer.enhance(page_path) for page_path in page_paths]
