"""Exception taxonomy shared by every Cain component."""


class CainError(Exception):
    """Base exception for Cain operations."""


class NotFoundError(CainError):
    """Raised when an id, parent, directory, or entry does not exist."""


class InvalidInputError(CainError):
    """Raised for malformed URLs, configuration, or stored data."""


class IOFailureError(CainError):
    """Raised when filesystem or external process operations fail."""


class SnapshotError(IOFailureError):
    """Raised when the webpage snapshot tool exits unsuccessfully."""

    def __init__(self, message: str, returncode: int) -> None:
        super().__init__(message)
        self.returncode = returncode


class NetworkError(CainError):
    """Raised on transport failures and unrecoverable HTTP responses."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthError(CainError):
    """Raised when authentication still fails after the allowed reauthentication."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ParseError(CainError):
    """Raised when markup or time values cannot be parsed."""


class InvalidDocumentError(ParseError):
    """Raised when a metadata document contains an unexpected element."""


__all__ = [
    "CainError",
    "NotFoundError",
    "InvalidInputError",
    "IOFailureError",
    "SnapshotError",
    "NetworkError",
    "AuthError",
    "ParseError",
    "InvalidDocumentError",
]
