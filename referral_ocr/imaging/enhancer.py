import io
from pathlib import Path

from PIL import Image, ImageFilter, ImageOps

from referral_ocr.imaging.exceptions import ConversionError


class ImageEnhancer:
    """Prepares a page image for recognition: grayscale, contrast stretch, sharpen.

    Output is always a PNG byte buffer so the recognition stage sees one format.
    """

    def __init__(self, autocontrast_cutoff: float = 1.0) -> None:
        self._cutoff = autocontrast_cutoff

    def enhance(self, source: Path | bytes) -> bytes:
        """Enhance an image given as a path or raw bytes.

        Raises:
            ConversionError: if the image cannot be decoded.
        """
        fp = io.BytesIO(source) if isinstance(source, bytes) else source
        try:
            with Image.open(fp) as image:
                upright = ImageOps.exif_transpose(image) or image
                gray = ImageOps.grayscale(upright)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise ConversionError(f"Cannot decode page image: {exc}") from exc

        normalized = ImageOps.autocontrast(gray, cutoff=self._cutoff)
        sharpened = normalized.filter(ImageFilter.SHARPEN)

        buf = io.BytesIO()
        sharpened.save(buf, format="PNG")
        return buf.getvalue()
