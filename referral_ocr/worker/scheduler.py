from concurrent.futures import Future, ThreadPoolExecutor
from uuid import UUID

from referral_ocr.logging.logger import Log
from referral_ocr.worker.scan_runner import ScanRunner


class ScanScheduler:
    """Runs scans in the background on a bounded thread pool.

    Submission returns immediately; at most ``max_workers`` scans are in
    flight and the rest queue inside the executor.
    """

    def __init__(self, runner: ScanRunner, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be positive")
        self._runner = runner
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="scan",
        )

    def submit(self, ocr_result_id: UUID) -> Future[bool]:
        Log.info(f"Scheduling OCR result {ocr_result_id}")
        return self._executor.submit(self._runner.run, ocr_result_id)

    def shutdown(self, wait: bool = True) -> None:
        Log.info("Shutting down scan scheduler")
        self._executor.shutdown(wait=wait)
