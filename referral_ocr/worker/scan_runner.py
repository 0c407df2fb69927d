from uuid import UUID

from referral_ocr.database.models import OcrResultRecord
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.logging.logger import Log
from referral_ocr.processor.processor import Processor


class ScanRunner:
    """Claim one OCR result, run the pipeline, and contain its errors.

    The processor records failures itself, so errors stop here after logging.
    """

    def __init__(self, processor: Processor, ocr_repo: OcrResultRepository) -> None:
        self._processor = processor
        self._ocr_repo = ocr_repo

    def run(self, ocr_result_id: UUID) -> bool:
        """Claim and process a pending result. False if it was not claimable."""
        try:
            record = self._ocr_repo.claim(ocr_result_id)
        except Exception as exc:
            Log.exception(f"Could not claim OCR result {ocr_result_id}: {exc}")
            return False
        if record is None:
            Log.info(f"OCR result {ocr_result_id} already claimed or finished, skipping")
            return False
        self.run_claimed(record)
        return True

    def run_claimed(self, record: OcrResultRecord) -> None:
        """Process a result that is already in processing."""
        Log.info(f"Running OCR result {record.id}")
        try:
            self._processor.process(record.id, record.referral_scan_id)
            Log.info(f"OCR result {record.id} completed successfully")
        except Exception as exc:
            Log.error(f"OCR result {record.id} failed: {exc}")
