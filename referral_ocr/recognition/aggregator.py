from collections.abc import Sequence

from referral_ocr.recognition.exceptions import NoPagesError
from referral_ocr.recognition.models import AggregatedText, RecognizedPage

PAGE_BREAK = "\n\n---PAGE BREAK---\n\n"


def aggregate(pages: Sequence[RecognizedPage]) -> AggregatedText:
    """Join page texts in order and average their confidences onto a 0-1 scale.

    Raises:
        NoPagesError: if there are no pages.
    """
    if not pages:
        raise NoPagesError("No pages produced for this document")

    full_text = PAGE_BREAK.join(page.text for page in pages)
    mean = sum(page.confidence for page in pages) / len(pages)
    confidence = min(1.0, max(0.0, mean / 100))
    return AggregatedText(full_text=full_text, confidence=confidence, page_count=len(pages))


def split_pages(full_text: str) -> list[str]:
    return full_text.split(PAGE_BREAK)
