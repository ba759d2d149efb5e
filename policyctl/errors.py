"""
Error types raised by policyctl.

Every error is terminal for the current invocation and is reported by the
CLI; nothing is retried.
"""


class PolicyError(Exception):
    """Base error for all policyctl exceptions."""


class OpenError(PolicyError):
    """Raised when the database file cannot be opened or initialized."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot open database {path}: {reason}")


class FileReadError(PolicyError):
    """Raised when a policy file is missing or unreadable."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot read policy file {path}: {reason}")


class DecodeError(PolicyError, ValueError):
    """Raised for malformed JSON or a field type mismatch."""

    def __init__(self, message: str, location: str = ""):
        self.location = location
        if location:
            message = f"{location}: {message}"
        super().__init__(message)


class NotFoundError(PolicyError):
    """Raised when no organization row holds a policy to fetch."""


class UpdateError(PolicyError):
    """Raised when the storage layer fails while writing a policy."""
