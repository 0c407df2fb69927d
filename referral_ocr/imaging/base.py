from abc import ABC, abstractmethod
from pathlib import Path


class BasePageRasterizer(ABC):
    """Contract for all PDF-to-image adapters."""

    @abstractmethod
    def rasterize(self, pdf_path: Path, target_dir: Path, scale: float) -> list[Path]:
        """Render every page of a PDF as a PNG file.

        Args:
            pdf_path: Source PDF on disk.
            target_dir: Directory owned by the caller; page files are written here.
            scale: Upscaling factor relative to 72 DPI.

        Returns:
            Page image paths in page order.

        Raises:
            ConversionError: if the PDF cannot be opened or rendered.
        """
