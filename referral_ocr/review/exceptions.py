class ReviewError(Exception):
    """Base exception for reviewer-facing operations."""


class NotFoundError(ReviewError):
    """Raised when a scan, OCR result, mapping or patient does not exist."""


class InvalidStateError(ReviewError):
    """Raised when a field mapping is no longer pending."""


class AlreadyResolvedError(ReviewError):
    """Raised when a resolution is attempted on an OCR result that is not pending."""
