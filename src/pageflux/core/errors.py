# src/pageflux/core/errors.py

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FetchErrorKind(Enum):
    NETWORK = "network"
    DECODING = "decoding"
    SERVER_STATUS = "server_status"
    CANCELLED = "cancelled"
    INVALID_QUERY = "invalid_query"
    UNKNOWN = "unknown"


_DEFAULT_MESSAGES = {
    FetchErrorKind.NETWORK: "Network error occurred",
    FetchErrorKind.DECODING: "Failed to decode the server response",
    FetchErrorKind.SERVER_STATUS: "The server returned an error",
    FetchErrorKind.CANCELLED: "The request was cancelled",
    FetchErrorKind.INVALID_QUERY: "Invalid query",
    FetchErrorKind.UNKNOWN: "Unknown error occurred",
}


class FetchError(Exception):
    """
    The single error type a fetch port may raise.

    Every failure of one `fetch_page` call is terminal for that call; the
    engine never retries on its own.
    """

    def __init__(self, kind: FetchErrorKind, message: Optional[str] = None, status_code: Optional[int] = None):
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        self.status_code = status_code
        super().__init__(self.message)

    @classmethod
    def network(cls, message: Optional[str] = None) -> "FetchError":
        return cls(FetchErrorKind.NETWORK, message)

    @classmethod
    def decoding(cls, message: Optional[str] = None) -> "FetchError":
        return cls(FetchErrorKind.DECODING, message)

    @classmethod
    def server_status(cls, status_code: int, message: Optional[str] = None) -> "FetchError":
        return cls(FetchErrorKind.SERVER_STATUS, message or f"Server responded with status {status_code}", status_code)

    @classmethod
    def cancelled(cls) -> "FetchError":
        return cls(FetchErrorKind.CANCELLED)

    @classmethod
    def invalid_query(cls, message: Optional[str] = None) -> "FetchError":
        return cls(FetchErrorKind.INVALID_QUERY, message)

    def __repr__(self) -> str:
        return f"<FetchError(kind={self.kind.value}, message='{self.message}')>"


@dataclass(frozen=True)
class ErrorInfo:
    """The last error an engine observed, as shown to the user."""
    kind: FetchErrorKind
    message: str

    @classmethod
    def from_error(cls, error: FetchError) -> "ErrorInfo":
        return cls(kind=error.kind, message=error.message)
