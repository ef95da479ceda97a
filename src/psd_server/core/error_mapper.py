"""
Error mapping and response generation functions.
"""

from typing import Any, Dict, Optional, Tuple

from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from .exceptions import (
    FileTooLargeError,
    InvalidInputError,
    InvalidStateError,
    JobNotFoundError,
    ParseError,
    PsdConversionError,
    PublishError,
)
from ..models import JobError

FALLBACK_MESSAGE = "An unexpected error occurred during conversion"

PUBLISH_MESSAGES = {
    "auth": "Could not authenticate with Figma. Check the configured access token.",
    "not_found": "The Figma team or project could not be found.",
    "transport": "Could not reach Figma. Check your network connection and try again.",
}

MESSAGE_PATTERNS = [
    (
        ["timeout", "timed out"],
        "The conversion took too long. Try again with a smaller file.",
    ),
    (
        ["memory"],
        "The file is too large to process. Try again with a smaller file.",
    ),
    (
        ["permission denied", "no such file", "not found"],
        "The uploaded file is no longer available. Please upload it again.",
    ),
    (
        ["invalid signature", "not a psd", "psd parsing failed"],
        "The file could not be read as a PSD document.",
    ),
]


def map_conversion_error(error: Exception) -> Tuple[str, str, int, list]:
    """Map pipeline exceptions to HTTP error responses.

    Args:
        error: Exception to map

    Returns:
        Tuple of (error_code, message, status_code, suggestions)
    """
    if isinstance(error, JobNotFoundError):
        return (
            "JOB_NOT_FOUND",
            str(error),
            HTTP_404_NOT_FOUND,
            ["Check the job id", "Upload the file again"],
        )
    elif isinstance(error, InvalidStateError):
        return (
            "INVALID_STATE",
            str(error),
            HTTP_409_CONFLICT,
            ["Poll /status until the job finishes"],
        )
    elif isinstance(error, FileTooLargeError):
        return (
            "FILE_TOO_LARGE",
            str(error),
            HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            ["Use a smaller file"],
        )
    elif isinstance(error, InvalidInputError):
        if "only" in str(error).lower() and "allowed" in str(error).lower():
            return (
                "UNSUPPORTED_FORMAT",
                str(error),
                HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                ["Upload a .psd file"],
            )
        return (
            "INVALID_INPUT",
            str(error),
            HTTP_400_BAD_REQUEST,
            ["Check input format", "Verify request structure"],
        )
    elif isinstance(error, ParseError):
        return (
            "PARSE_FAILED",
            friendly_error_message(error),
            HTTP_422_UNPROCESSABLE_ENTITY,
            ["Make sure the file is a valid Photoshop document"],
        )
    elif isinstance(error, PublishError):
        return (
            "PUBLISH_FAILED",
            friendly_error_message(error),
            HTTP_502_BAD_GATEWAY,
            ["Check Figma credentials", "Try again later"],
        )
    else:
        return (
            "CONVERSION_FAILED",
            friendly_error_message(error),
            HTTP_500_INTERNAL_SERVER_ERROR,
            ["Check input format", "Contact support if issue persists"],
        )


def friendly_error_message(error: Exception) -> str:
    """Return a user-facing message for an error.

    Raw exception text is only passed through for errors raised with a
    message written for users; everything else is matched against known
    patterns and falls back to a generic message.
    """
    if isinstance(error, ParseError):
        return "The file could not be read as a PSD document."

    if isinstance(error, PublishError):
        return PUBLISH_MESSAGES.get(error.kind, "Creating the output file failed.")

    if isinstance(
        error,
        (JobNotFoundError, InvalidStateError, InvalidInputError, FileTooLargeError),
    ) and str(error):
        return str(error)

    error_msg = str(error).lower()
    for keywords, message in MESSAGE_PATTERNS:
        if any(keyword in error_msg for keyword in keywords):
            return message

    return FALLBACK_MESSAGE


def build_job_error(error: Exception, stage: Optional[str] = None) -> JobError:
    """Build the structured error recorded on a failed job."""
    code, message, _status_code, _suggestions = map_conversion_error(error)

    details: Dict[str, Any] = {"error_type": type(error).__name__}
    if stage:
        details["stage"] = stage
    if isinstance(error, PublishError):
        details["kind"] = error.kind
    if isinstance(error, PsdConversionError):
        details.update(error.details)

    return JobError(code=code, message=message, details=details)
