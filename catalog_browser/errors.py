"""Typed fetch results and failure classification."""

import socket
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import httpx
from pydantic import ValidationError

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of a failed fetch."""

    NO_INTERNET = "no_internet"
    TIMEOUT = "timeout"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    PARSING_ERROR = "parsing_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FetchSuccess(Generic[T]):
    """Successful fetch carrying its data."""

    data: T


@dataclass(frozen=True)
class FetchError:
    """Failed fetch: a human-readable message plus its category."""

    message: str
    kind: ErrorKind = ErrorKind.UNKNOWN


FetchResult = FetchSuccess[T] | FetchError


NO_INTERNET_MESSAGE = "No internet connection. Please check your network."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
SERVER_ERROR_MESSAGE = "Server error. Please try again later."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."
PARSING_ERROR_MESSAGE = "Failed to process data. Please try again."
UNKNOWN_ERROR_MESSAGE = "An unexpected error occurred."

CLIENT_ERROR_MESSAGES = {
    400: "Invalid request. Please try again.",
    401: "Authentication failed. Please sign in again.",
    403: "Access denied.",
    404: "Resource not found.",
    408: "Request timed out. Please try again.",
    429: "Too many requests. Please slow down.",
}
DEFAULT_CLIENT_ERROR_MESSAGE = "Request error. Please try again."


def client_error_message(status_code: int) -> str:
    """Message for a 4xx status code."""
    return CLIENT_ERROR_MESSAGES.get(status_code, DEFAULT_CLIENT_ERROR_MESSAGE)


def _is_name_resolution_failure(exc: BaseException) -> bool:
    """Walk the exception chain looking for a DNS lookup failure."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        current = current.__cause__ or current.__context__
    return False


def classify(exc: BaseException) -> FetchError:
    """Turn an exception raised while fetching into a ``FetchError``.

    Args:
        exc: Exception raised by the HTTP client or while parsing

    Returns:
        FetchError with user-facing message and kind
    """
    if isinstance(exc, httpx.TimeoutException):
        return FetchError(TIMEOUT_MESSAGE, ErrorKind.TIMEOUT)

    if isinstance(exc, (httpx.ConnectError, socket.gaierror)) and _is_name_resolution_failure(exc):
        return FetchError(NO_INTERNET_MESSAGE, ErrorKind.NO_INTERNET)

    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        if 400 <= code <= 499:
            return FetchError(client_error_message(code), ErrorKind.CLIENT_ERROR)
        if 500 <= code <= 599:
            return FetchError(SERVER_ERROR_MESSAGE, ErrorKind.SERVER_ERROR)
        return FetchError(f"HTTP error: {exc.response.reason_phrase}", ErrorKind.UNKNOWN)

    if isinstance(exc, (httpx.TransportError, OSError)):
        return FetchError(NETWORK_ERROR_MESSAGE, ErrorKind.NETWORK_ERROR)

    # ValidationError and json.JSONDecodeError are both ValueErrors
    if isinstance(exc, (ValidationError, ValueError, httpx.DecodingError)):
        return FetchError(PARSING_ERROR_MESSAGE, ErrorKind.PARSING_ERROR)

    return FetchError(str(exc) or UNKNOWN_ERROR_MESSAGE, ErrorKind.UNKNOWN)
