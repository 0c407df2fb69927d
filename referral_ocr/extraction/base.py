from abc import ABC, abstractmethod

from referral_ocr.extraction.models import ExtractionOutcome


class BaseFieldExtractor(ABC):
    """Contract for all structured field extractors."""

    @abstractmethod
    def extract(self, text: str) -> ExtractionOutcome:
        """Turn recognized letter text into a candidate patient/referral record.

        Never raises for backend trouble: failures come back as a degraded
        outcome with empty fields and confidence 0.
        """
