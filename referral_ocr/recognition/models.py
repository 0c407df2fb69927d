from dataclasses import dataclass


@dataclass(frozen=True)
class RecognizedPage:
    """Text of one page with the engine's confidence on a 0-100 scale."""

    text: str
    confidence: float


@dataclass(frozen=True)
class AggregatedText:
    """Whole-document text with a 0-1 confidence."""

    full_text: str
    confidence: float
    page_count: int
