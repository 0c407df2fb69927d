from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from referral_ocr.database.models import DocumentType, ReferralScanRecord
from referral_ocr.extraction.models import ExtractionOutcome
from referral_ocr.recognition.models import AggregatedText, RecognizedPage
from referral_ocr.review.patients import PatientMatch


@dataclass(slots=True)
class PipelineContext:
    """Accumulates data as one OCR result moves through the pipeline steps."""

    ocr_result_id: UUID
    referral_scan_id: UUID
    scan: ReferralScanRecord | None = None
    scan_path: Path | None = None
    page_images: list[bytes] = field(default_factory=list)
    pages: list[RecognizedPage] = field(default_factory=list)
    aggregated: AggregatedText | None = None
    document_type: DocumentType = DocumentType.UNKNOWN
    outcome: ExtractionOutcome | None = None
    match: PatientMatch | None = None
    mapping_count: int = 0
    error_message: str = ""


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
