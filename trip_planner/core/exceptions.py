from __future__ import annotations


class AppError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found", details: dict | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class TransportError(AppError):
    """Network failure, timeout, non-success status or malformed payload from a provider."""

    def __init__(self, message: str = "Provider request failed", details: dict | None = None) -> None:
        super().__init__(code="transport_error", message=message, status_code=502, details=details)


class InvalidCoordinateError(ValueError):
    """A coordinate outside [-90, 90] x [-180, 180] or not a finite number."""
