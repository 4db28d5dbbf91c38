"""Error kinds shared by every handler.

Handlers raise :class:`ApiError` with one of the :class:`ErrorKind` members;
the exception handlers in :mod:`pitstop.main` turn it into a ``{"error": ...}``
JSON body with the status of its kind.
"""

from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    CONFLICT = "conflict"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ApiError(Exception):
    """Raised by handlers to report a failure of a known kind."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"ApiError({self.kind.value!r}, {self.message!r})"


def unauthorized(message: str = "Unauthorized") -> ApiError:
    return ApiError(ErrorKind.UNAUTHORIZED, message)


def forbidden(message: str = "Forbidden") -> ApiError:
    return ApiError(ErrorKind.FORBIDDEN, message)


def not_found(message: str) -> ApiError:
    return ApiError(ErrorKind.NOT_FOUND, message)


def invalid_argument(message: str) -> ApiError:
    return ApiError(ErrorKind.INVALID_ARGUMENT, message)


def conflict(message: str) -> ApiError:
    return ApiError(ErrorKind.CONFLICT, message)
