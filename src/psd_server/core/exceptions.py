"""
Exceptions raised by the PSD conversion pipeline.
"""

from typing import Dict, Any, Optional


class PsdConversionError(Exception):
    """Base exception for conversion errors."""

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ParseError(PsdConversionError):
    """Raised when the source bytes are not a well-formed PSD document."""

    pass


class LayerConversionError(PsdConversionError):
    """Raised when a single layer cannot be converted."""

    pass


class ExportError(PsdConversionError):
    """Raised when a raster layer cannot be encoded or written."""

    pass


class PublishError(PsdConversionError):
    """Raised when the target design tool rejects or cannot be reached.

    ``kind`` is one of ``transport``, ``auth``, ``not_found`` or ``unknown``.
    """

    def __init__(
        self,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
        kind: str = "unknown",
    ):
        super().__init__(message, details)
        self.kind = kind


class JobNotFoundError(PsdConversionError):
    """Raised when a job id is not known to the job store."""

    pass


class InvalidStateError(PsdConversionError):
    """Raised when a job is not in a state that allows the request."""

    pass


class InvalidInputError(PsdConversionError):
    """Raised when an upload or request payload is invalid."""

    pass


class FileTooLargeError(PsdConversionError):
    """Raised when an upload exceeds the configured size limit."""

    pass
