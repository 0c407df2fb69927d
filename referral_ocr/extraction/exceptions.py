class ExtractionError(Exception):
    """Raised when structured extraction fails."""


class ExtractionValidationError(ExtractionError):
    """Raised when the backend payload does not have the expected shape."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
