"""Domain-specific exceptions for service and orchestration layers.

Every exception carries the HTTP status it maps to; main.py renders them
as ``{"error": message}``.
"""
from __future__ import annotations


class DocScanError(Exception):
    """Base class for failures surfaced to the caller."""

    status_code: int = 500
    default_message: str = "Unexpected internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NoFileUploadedError(DocScanError):
    """The multipart form carried no file field (maps to HTTP 400)."""

    status_code = 400
    default_message = "No file uploaded"


class FileValidationError(DocScanError):
    """Invalid file input (empty, undecodable image, etc.) (maps to HTTP 400)."""

    status_code = 400
    default_message = "Invalid file"


class UnsupportedMediaTypeError(DocScanError):
    """Declared type is neither image/*, PDF nor TIFF (maps to HTTP 400)."""

    status_code = 400

    def __init__(self, media_type: str) -> None:
        self.media_type = media_type
        super().__init__(f"Unsupported file type: {media_type or 'unknown'}")


class PayloadTooLargeError(DocScanError):
    """Payload exceeds configured size limits (maps to HTTP 413)."""

    status_code = 413
    default_message = "File exceeds size limit"


class SubmissionRejectedError(DocScanError):
    """The analysis service refused the submission.

    Carries the remote status and body verbatim; the status is propagated
    to the caller.
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(body or f"Analysis request rejected with HTTP {status_code}")


class MissingJobHandleError(DocScanError):
    """Submission succeeded but no Operation-Location header came back (HTTP 500).

    This is a contract violation by the remote service and is never retried.
    """

    default_message = "No Operation-Location"


class RemoteAnalysisFailedError(DocScanError):
    """The remote job reached the terminal ``failed`` state (maps to HTTP 500)."""

    default_message = "OCR failed"


class PollingTimedOutError(DocScanError):
    """Polling attempts ran out before a terminal state (maps to HTTP 500).

    The job's real outcome is unknown, which is not the same as failed.
    """

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"OCR timed out after {attempts} status checks")


class MalformedAnalysisResultError(DocScanError):
    """A poll response did not match the expected schema (maps to HTTP 502)."""

    status_code = 502
    default_message = "Malformed response from analysis service"


class ExternalServiceError(DocScanError):
    """Upstream provider unreachable or misconfigured (maps to HTTP 503)."""

    status_code = 503
    default_message = "Analysis service unavailable"


class PersistenceFailedError(DocScanError):
    """Writing the result to the durable store failed (maps to HTTP 500).

    Only surfaced as an HTTP error when persistence failures are configured
    as fatal; otherwise the analysis is returned with a warning.
    """

    default_message = "OCR succeeded, but saving the result failed"


class UnknownProfileError(DocScanError):
    """The requested analysis model is neither read nor layout (maps to HTTP 400)."""

    status_code = 400

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"Unknown model: {model}")


class ProfileConflictError(DocScanError):
    """The ``model`` field names a different model than the route runs (maps to HTTP 400)."""

    status_code = 400

    def __init__(self, model: str, route_model: str) -> None:
        self.model = model
        super().__init__(f"Model {model} conflicts with this endpoint ({route_model})")


class UnexpectedInternalError(DocScanError):
    """Catch-all for anything not covered above (maps to HTTP 500)."""
