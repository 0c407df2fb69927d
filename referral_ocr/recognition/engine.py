"""Shared recognition engine contract.

One engine instance is owned by the process entry point and injected into the
pipeline. Engines are expensive to start and not safe for concurrent use, so
the base class starts them lazily and serializes every call behind a lock.
"""

import threading
from abc import ABC, abstractmethod
from types import TracebackType

from referral_ocr.logging.logger import Log
from referral_ocr.recognition.exceptions import RecognitionError
from referral_ocr.recognition.models import RecognizedPage


class BaseRecognitionEngine(ABC):
    """Lazily started, lock-serialized wrapper around an OCR backend."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started = False
        self._closed = False

    def recognize(self, page_image: bytes) -> RecognizedPage:
        """Recognize one page image. Callers queue on the engine lock.

        Raises:
            RecognitionError: if the engine cannot start or fails on this page.
        """
        with self._lock:
            if self._closed:
                raise RecognitionError("Recognition engine has been shut down")
            if not self._started:
                self._start_guarded()
            try:
                page = self._recognize(page_image)
            except RecognitionError:
                raise
            except Exception as exc:
                raise RecognitionError(f"Recognition failed: {exc}") from exc

        return RecognizedPage(
            text=page.text,
            confidence=min(100.0, max(0.0, page.confidence)),
        )

    def close(self) -> None:
        """Release the backend. Later recognize() calls fail."""
        with self._lock:
            if self._started:
                try:
                    self._stop()
                finally:
                    self._started = False
            self._closed = True

    @property
    def started(self) -> bool:
        return self._started

    def __enter__(self) -> "BaseRecognitionEngine":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _start_guarded(self) -> None:
        Log.info(f"Starting recognition engine {type(self).__name__}")
        try:
            self._start()
        except RecognitionError:
            raise
        except Exception as exc:
            raise RecognitionError(f"Recognition engine failed to start: {exc}") from exc
        self._started = True

    @abstractmethod
    def _start(self) -> None:
        """Load models / verify the backend. Called once, under the lock."""

    @abstractmethod
    def _recognize(self, page_image: bytes) -> RecognizedPage:
        """Run the backend on one PNG page. Called under the lock."""

    @abstractmethod
    def _stop(self) -> None:
        """Release backend resources. Called under the lock."""
