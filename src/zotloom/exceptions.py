"""Custom exception classes for the zotloom library.

Operations on the client return ``Ok``/``Err`` values rather than raising.
The exceptions below are what a caller gets when it chooses to unwrap a
failed result (``Err.unwrap()``), plus configuration errors raised when a
client is built from incomplete settings.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import Failure, FailureReason


class ZotloomError(Exception):
    """Base exception class for all zotloom errors."""

    def __init__(self, message: str, *, failure: "Failure | None" = None):
        """Initializes the base exception.

        Args:
            message: The error message.
            failure: Optional failure value the exception was raised from.
        """
        super().__init__(message)
        self.message = message
        self.failure = failure

    def __str__(self) -> str:
        if self.failure is not None and self.failure.status_code is not None:
            return f"{self.message} (Status: {self.failure.status_code})"
        return self.message


class ConfigurationError(ZotloomError):
    """Represents an error in the library's configuration."""

    def __init__(self, message: str):
        super().__init__(message, failure=None)


class APIError(ZotloomError):
    """Represents a failed API operation (generic or unknown status)."""


class ValidationError(APIError):
    """The service rejected the request as malformed (400 Bad Request)."""


class AuthError(APIError):
    """Invalid API key or insufficient permissions (403 Forbidden)."""


class NotFoundError(APIError):
    """Represents a resource not found error (404 Not Found)."""


class LibraryLockedError(APIError):
    """The target library is temporarily locked (409 Conflict)."""


class VersionConflictError(APIError):
    """The object changed since it was fetched (412 Precondition Failed).

    The caller must re-fetch the object and retry with the new version.
    """


class PayloadTooLargeError(APIError):
    """Represents a request body the service refused to accept (413)."""


class RateLimitError(APIError):
    """Represents hitting the API rate limit (429 Too Many Requests)."""


class ServiceUnavailableError(APIError):
    """The service is temporarily unavailable (503)."""


class WriteRejectedError(APIError):
    """A batch write succeeded over HTTP but the service rejected the object."""


class NoAttachmentError(NotFoundError):
    """A parent item has no attachment child to resolve content from."""


def exception_for(reason: "FailureReason") -> type[APIError]:
    """Maps a failure reason to the exception class raised on unwrap."""
    from .types import FailureReason

    return {
        FailureReason.MALFORMED_REQUEST: ValidationError,
        FailureReason.AUTHORIZATION: AuthError,
        FailureReason.NOT_FOUND: NotFoundError,
        FailureReason.LIBRARY_LOCKED: LibraryLockedError,
        FailureReason.VERSION_CONFLICT: VersionConflictError,
        FailureReason.PAYLOAD_TOO_LARGE: PayloadTooLargeError,
        FailureReason.THROTTLED: RateLimitError,
        FailureReason.SERVICE_UNAVAILABLE: ServiceUnavailableError,
        FailureReason.WRITE_REJECTED: WriteRejectedError,
        FailureReason.NO_ATTACHMENT: NoAttachmentError,
    }.get(reason, APIError)
