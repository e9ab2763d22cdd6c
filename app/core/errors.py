"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and the message a client is
allowed to see. The exception's own text (``str(exc)``) is for server logs and
may be more detailed than ``public_message``, except for the Fone errors,
whose text must never contain the node URL or the SDK key.
"""


class AppError(Exception):
    """Base class for errors rendered as ``{"error": ...}`` responses."""

    status_code: int = 500
    public_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class FoneError(AppError):
    """Any failure talking to the Fone node."""

    public_message = "Fone API error"


class NotConfigured(FoneError):
    """FONE_BASE_URL or FONE_SDK_KEY is missing."""

    public_message = "Fone API not configured (FONE_BASE_URL / FONE_SDK_KEY missing)"


class RemoteCallFailed(FoneError):
    """Non-success status or transport failure from the Fone node."""


class ValidationFailed(AppError):
    """A required request field is missing or malformed."""

    status_code = 400
    public_message = "Invalid request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        # field-specific text is safe to return to the client
        self.public_message = str(self)


class StoreFailed(AppError):
    """Database error; the detail stays in the server log."""

    public_message = "DB error"
