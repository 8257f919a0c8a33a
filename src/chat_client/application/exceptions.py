from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    """Rejected locally before any network call."""


class NetworkError(AppError):
    """Transport failure, unexpected content type or malformed payload."""


class ApiError(NetworkError):
    """The server answered with an error envelope or a non-success status."""

    def __init__(self, detail: str = "", *, code: str = "", status_code: int | None = None) -> None:
        self.code = code
        self.status_code = status_code
        super().__init__(detail)


class StorageError(AppError):
    """Persisted cache could not be read or written."""
