"""Custom exception classes for the application."""


class TrackerException(Exception):
    """Base exception for all tracker errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(TrackerException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class StorageError(TrackerException):
    """Raised when a snapshot cannot be written to the product store."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Storage error for {url}: {message}")
