"""
Memora Backend — Custom Exception Hierarchy
============================================

What:  Application-specific exceptions, each tagged with an `ErrorKind`.
Why:   Services raise domain errors without knowing about HTTP. The transport
       boundary (main.py) owns the single ErrorKind → status code table.
How:   Each exception carries a message, a context dict, and a kind.
       One global handler reads `exc.kind` instead of switching on types.

Exception Hierarchy:
    MemoraError (base)                      kind
    ├── ValidationError                     VALIDATION
    │   └── FileValidationError             per RejectionReason
    ├── AuthenticationError                 UNAUTHENTICATED
    ├── NotFoundError                       NOT_FOUND
    ├── ConflictError                       CONFLICT
    ├── DatabaseError                       INTERNAL
    └── FileClassificationError             INTERNAL

Ownership policy:
    A resource owned by someone else is reported exactly like a missing one
    (NotFoundError). There is deliberately no "forbidden" error kind.
"""

import enum
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    """Transport-independent classification of every failure we surface."""

    VALIDATION = "validation_error"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "server_error"


class RejectionReason(str, enum.Enum):
    """Why the file validator refused an upload."""

    INVALID_FILENAME = "invalid_filename"
    EXTENSION_NOT_ALLOWED = "extension_not_allowed"
    UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"
    MIME_EXTENSION_MISMATCH = "mime_extension_mismatch"
    SIZE_OUT_OF_RANGE = "size_out_of_range"
    CORRUPTED_CONTENT = "corrupted_content"
    SIGNATURE_MISMATCH = "signature_mismatch"


KIND_BY_REASON: Dict[RejectionReason, ErrorKind] = {
    RejectionReason.INVALID_FILENAME: ErrorKind.VALIDATION,
    RejectionReason.EXTENSION_NOT_ALLOWED: ErrorKind.UNSUPPORTED_MEDIA_TYPE,
    RejectionReason.UNSUPPORTED_CONTENT_TYPE: ErrorKind.UNSUPPORTED_MEDIA_TYPE,
    RejectionReason.MIME_EXTENSION_MISMATCH: ErrorKind.VALIDATION,
    RejectionReason.SIZE_OUT_OF_RANGE: ErrorKind.VALIDATION,
    RejectionReason.CORRUPTED_CONTENT: ErrorKind.VALIDATION,
    RejectionReason.SIGNATURE_MISMATCH: ErrorKind.VALIDATION,
}


class MemoraError(Exception):
    """
    Base exception for all Memora application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info; returned only for client errors
        kind:     ErrorKind used by the global handler to pick a status code
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MemoraError):
    """
    Raised when client input fails a business rule.

    HTTP: 400 Bad Request. Schema-level problems are still reported by
    FastAPI itself as 422.
    """

    kind = ErrorKind.VALIDATION

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


class FileValidationError(ValidationError):
    """
    Raised when an uploaded file is rejected by the FileValidator.

    The kind depends on the reason: unsupported extensions/types map to 415,
    oversized payloads to 413, everything else to 400.
    """

    def __init__(
        self,
        reason: RejectionReason,
        message: str,
        filename: Optional[str] = None,
        too_large: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason.value
        if filename is not None:
            ctx["filename"] = filename
        super().__init__(message=message, field="files", context=ctx)
        self.reason = reason
        self.filename = filename
        self.kind = ErrorKind.PAYLOAD_TOO_LARGE if too_large else KIND_BY_REASON[reason]


class AuthenticationError(MemoraError):
    """Missing, malformed or expired credentials. HTTP 401."""

    kind = ErrorKind.UNAUTHENTICATED

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MemoraError):
    """
    Raised when a requested resource does not exist for the caller.

    Also raised when the resource exists but belongs to another user, so the
    response never reveals whether an identifier is in use.
    """

    kind = ErrorKind.NOT_FOUND

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


class ConflictError(MemoraError):
    """The request collides with existing state (e.g. email already registered)."""

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MemoraError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; SQL details stay
    in the server log.
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileClassificationError(MemoraError):
    """
    A validated MIME type is neither image/* nor video/*.

    Only reachable if the validator's allow-lists are inconsistent, so it is
    treated as a server fault.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, mime_type: str):
        super().__init__(
            message=f"Validated MIME type '{mime_type}' has no file kind",
            context={"mime_type": mime_type},
        )
        self.mime_type = mime_type
