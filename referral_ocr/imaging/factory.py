from referral_ocr.config.settings import Settings
from referral_ocr.imaging.base import BasePageRasterizer
from referral_ocr.imaging.pdfplumber_rasterizer import PdfPlumberRasterizer
from referral_ocr.imaging.pymupdf_rasterizer import PyMuPdfRasterizer


class RasterizerFactory:
    """Creates the correct PDF rasterizer based on settings."""

    ADAPTERS: dict[str, type[BasePageRasterizer]] = {
        "pdfplumber": PdfPlumberRasterizer,
        "pymupdf": PyMuPdfRasterizer,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePageRasterizer:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
