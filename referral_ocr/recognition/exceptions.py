class RecognitionError(Exception):
    """Raised when the recognition engine fails on a page."""


class NoPagesError(RecognitionError):
    """Raised when a document produced no pages to aggregate."""
