class ConversionError(Exception):
    """Raised when an upload cannot be turned into page images."""
