"""
StudyNotes Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for each failure class of the service.
Why:   Services raise domain errors; global handlers (main.py) map them to
       HTTP status codes and a consistent JSON body.
How:   Each exception carries a user-facing message and an optional context
       dict that is logged but never returned verbatim for server errors.

Exception Hierarchy:
    StudyNotesError (base)
    ├── ValidationError          → 400 Bad Request (missing/empty field, oversize upload)
    │   └── UnsupportedTypeError → 415 Unsupported Media Type
    ├── NotFoundError            → 404 Not Found
    ├── ExtractionError          → 500 Internal Server Error (PDF parse / OCR failed)
    ├── UpstreamError            → 502 Bad Gateway (generation/speech provider failed)
    ├── ParseError               → 502 Bad Gateway (provider answered with unusable JSON)
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error

    ConfigurationError is raised only at startup and is not mapped to HTTP.
"""

from typing import Any, Dict, List, Optional


class StudyNotesError(Exception):
    """
    Base exception for all StudyNotes application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(StudyNotesError):
    """
    Raised when client input fails validation (InvalidInput).

    When:    Empty text, missing file, oversized upload, unknown generation mode.
    HTTP:    400 Bad Request

    Always resolved locally: no provider or store call happens after this is raised.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnsupportedTypeError(ValidationError):
    """
    Raised when an upload declares a MIME type other than application/pdf or image/*.

    HTTP:    415 Unsupported Media Type
    """

    def __init__(
        self,
        mime_type: Optional[str],
        allowed: Optional[List[str]] = None,
    ):
        allowed = allowed or ["application/pdf", "image/*"]
        super().__init__(
            message=(
                f"File type '{mime_type or 'unknown'}' is not supported. "
                f"Allowed types: {', '.join(allowed)}"
            ),
            field="file",
            context={"mime_type": mime_type, "allowed": allowed},
        )
        self.mime_type = mime_type


class NotFoundError(StudyNotesError):
    """
    Raised when a record addressed by id or email does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ExtractionError(StudyNotesError):
    """
    Raised when text extraction (PDF parsing or OCR) fails or times out.

    HTTP:    500 Internal Server Error

    No record is persisted and any transient working file is already removed
    by the time this propagates.
    """

    def __init__(
        self,
        message: str = "Could not extract text from the uploaded file.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamError(StudyNotesError):
    """
    Raised when the generation or speech provider is unreachable, times out,
    answers with a non-success status, or returns a malformed body.

    HTTP:    502 Bad Gateway

    Why 502: the failure is in a provider we proxy to, not in our own server.
    """

    def __init__(
        self,
        message: str = "The AI service is temporarily unavailable. Please try again later.",
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if provider:
            ctx["provider"] = provider
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.provider = provider
        self.status_code = status_code


class ParseError(StudyNotesError):
    """
    Raised when an operation requires structured JSON from the model and the
    model's text is not valid JSON of the expected shape.

    HTTP:    502 Bad Gateway, error code "parse_error"

    Kept distinct from UpstreamError so callers can tell "provider unreachable"
    from "provider responded with unusable content".
    """

    def __init__(
        self,
        message: str = "The AI service returned a response that could not be understood.",
        raw_output: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if raw_output is not None:
            ctx["raw_output"] = raw_output[:500]
        super().__init__(message=message, context=ctx)
        self.raw_output = raw_output


class FileStorageError(StudyNotesError):
    """
    Raised when writing an uploaded binary to the uploads directory fails.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(StudyNotesError):
    """
    Raised when a document store operation fails or exceeds its timeout.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the query context is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(Exception):
    """Raised at startup when required configuration values are missing."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.missing = missing or []
