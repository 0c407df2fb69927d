from referral_ocr.config.settings import Settings
from referral_ocr.database.connection import close_pool, init_pool
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.logging.logger import Log
from referral_ocr.processor.processor import build_processor
from referral_ocr.recognition.tesseract_engine import TesseractEngine
from referral_ocr.worker.scan_runner import ScanRunner
from referral_ocr.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    engine = TesseractEngine(
        language=settings.ocr_language,
        tesseract_cmd=settings.tesseract_cmd,
    )
    try:
        processor = build_processor(settings, engine)
        ocr_repo = OcrResultRepository()
        scan_runner = ScanRunner(processor, ocr_repo)
        worker = Worker(ocr_repo, scan_runner, settings)
        worker.run()
    finally:
        engine.close()
        close_pool()


if __name__ == "__main__":
    main()
