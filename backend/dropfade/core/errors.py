# dropfade/core/errors.py

class DropError(Exception):
    """Base class for every failure the service reports to a caller"""

    status_code = 500
    message = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class NotFound(DropError):
    """Code never existed, or its drop has been fully reclaimed"""

    status_code = 404
    message = "File not found or expired"


class Gone(NotFound):
    """
    Drop existed but was already consumed or has just expired.

    Subclass of NotFound so callers that only care about "no content"
    can treat both the same way.
    """

    status_code = 410
    message = "File has already been accessed"

    def __init__(self, reason: str = "consumed", message: str | None = None):
        if message is None and reason == "expired":
            message = "File has expired and has been permanently deleted"
        super().__init__(message)
        self.reason = reason


class ValidationError(DropError):
    status_code = 400
    message = "Invalid upload"


class Oversize(ValidationError):
    status_code = 413
    message = "File too large"


class StoreUnavailable(DropError):
    """Metadata or blob backend could not be reached or rejected the call"""

    status_code = 503
    message = "Storage backend unavailable"


class DeliveryFailure(DropError):
    """
    Blob could not be fetched after the metadata entry was already deleted.

    The access right is spent at this point; retrying will not succeed.
    """

    status_code = 502
    message = "Failed to download file"


class BlobFetchError(DropError):
    """Raised by blob adapters when every download path failed"""

    status_code = 502
    message = "All download methods failed"
