import time

from referral_ocr.config.settings import Settings
from referral_ocr.database.connection import get_connection
from referral_ocr.database.models import OcrResultRecord
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.logging.logger import Log
from referral_ocr.worker.scan_runner import ScanRunner


class Worker:
    """Poll loop for pending results nobody scheduled: sleep -> claim -> run."""

    def __init__(
        self,
        ocr_repo: OcrResultRepository,
        scan_runner: ScanRunner,
        settings: Settings,
    ) -> None:
        self._ocr_repo = ocr_repo
        self._scan_runner = scan_runner
        self._settings = settings

    def run(self, max_scans: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_scans is set, stop after processing that many results (for testing).
        """
        Log.info("Worker started, polling for pending scans")
        scans_done = 0
        try:
            while True:
                if max_scans is not None and scans_done >= max_scans:
                    break
                record = self._try_claim()
                if record:
                    self._scan_runner.run_claimed(record)
                    scans_done += 1
                else:
                    Log.debug("No pending scans, sleeping")
                    time.sleep(self._settings.scan_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_claim(self) -> OcrResultRecord | None:
        """Attempt to claim the next pending result. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._ocr_repo.claim_next_pending(
                    conn, stale_after_seconds=self._settings.scan_stale_after_seconds
                )
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
