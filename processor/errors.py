"""Exception types raised by the calendar service."""
from typing import Dict, Optional


class CalendarError(Exception):
    """Base class for calendar service errors."""


class ValidationError(CalendarError):
    """Client-side field validation failed before any store call."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        summary = '; '.join(f"{name}: {message}" for name, message in self.errors.items())
        super().__init__(f"Invalid event: {summary}")


class ImageValidationError(CalendarError):
    """Uploaded image rejected by the type or size check."""

    def __init__(self, message: str):
        self.errors = {'image': message}
        super().__init__(message)


class ImageProcessingError(CalendarError):
    """Deriving the compressed image or thumbnail failed."""


class BackendNotConfiguredError(CalendarError):
    """Mutating call made while the remote backend is not configured."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Backend not configured - cannot {operation} events")


class EventWriteError(CalendarError):
    """Remote backend rejected or could not be reached during a write."""

    def __init__(self, operation: str, message: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {operation} event: {message}")
