class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class ScanFileMissingError(ProcessorError):
    """Raised when the stored file for a referral scan is not on disk."""


class ClaimLostError(ProcessorError):
    """Raised when an OCR result left the processing state while the pipeline ran."""
