from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from referral_ocr.config.settings import Settings
from referral_ocr.database.connection import transaction
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.database.repositories.referral_scan_repository import ReferralScanRepository
from referral_ocr.logging.logger import Log
from referral_ocr.processor.processor import build_processor
from referral_ocr.recognition.engine import BaseRecognitionEngine
from referral_ocr.review.exceptions import InvalidStateError
from referral_ocr.review.patients import BasePatientDirectory
from referral_ocr.worker.scan_runner import ScanRunner
from referral_ocr.worker.scheduler import ScanScheduler


@dataclass(frozen=True)
class UploadedScan:
    """A file already written under files_root by the upload layer."""

    filename: str
    original_name: str
    mime_type: str
    file_size: int


class IntakeService:
    """Records uploaded scans and hands them to the background scheduler."""

    def __init__(
        self,
        scan_repo: ReferralScanRepository,
        ocr_repo: OcrResultRepository,
        scheduler: ScanScheduler,
    ) -> None:
        self._scan_repo = scan_repo
        self._ocr_repo = ocr_repo
        self._scheduler = scheduler

    def enqueue_scan(self, upload: UploadedScan, uploader_id: UUID) -> UUID:
        """Persist the scan with a pending OCR result and schedule it.

        Returns as soon as the work is submitted; the caller never waits for
        recognition.
        """
        with transaction() as conn:
            scan = self._scan_repo.insert(
                conn,
                uploaded_by=uploader_id,
                filename=upload.filename,
                original_name=upload.original_name,
                mime_type=upload.mime_type,
                file_size=upload.file_size,
            )
            result = self._ocr_repo.insert_pending(conn, scan.id)

        Log.info(f"Enqueued scan {scan.id} ({upload.original_name}) as OCR result {result.id}")
        self._scheduler.submit(result.id)
        return scan.id

    def reprocess_scan(self, scan_id: UUID, actor_id: UUID) -> UUID:
        """Queue a fresh OCR run for an existing scan and return its result id.

        Earlier results are kept. The scan row is locked while checking for
        an unfinished run, so two concurrent requests queue at most one.

        Raises:
            NotFoundError: unknown scan.
            InvalidStateError: the scan already has a pending or processing run.
        """
        with transaction() as conn:
            self._scan_repo.lock(conn, scan_id)
            if self._ocr_repo.has_unfinished_run(conn, scan_id):
                raise InvalidStateError(
                    f"Referral scan {scan_id} is already queued or processing"
                )
            result = self._ocr_repo.insert_pending(conn, scan_id)

        Log.info(
            f"Scan {scan_id} queued for reprocessing by {actor_id} as OCR result {result.id}"
        )
        self._scheduler.submit(result.id)
        return result.id

    def close(self) -> None:
        """Stop accepting scans and wait for in-flight ones to finish."""
        self._scheduler.shutdown(wait=True)


def build_intake_service(
    settings: Settings,
    engine: BaseRecognitionEngine,
    files_root: Path | None = None,
    patients: BasePatientDirectory | None = None,
) -> IntakeService:
    """Wire an IntakeService whose scheduler runs up to max_concurrent_scans at once."""
    ocr_repo = OcrResultRepository()
    processor = build_processor(settings, engine, files_root=files_root, patients=patients)
    runner = ScanRunner(processor, ocr_repo)
    scheduler = ScanScheduler(runner, max_workers=settings.max_concurrent_scans)
    return IntakeService(ReferralScanRepository(), ocr_repo, scheduler)
