"""Domain-specific errors for koreaderctl."""


class KOReaderCtlError(Exception):
    """Base error for koreaderctl."""


class InvalidEndpointError(KOReaderCtlError):
    """Raised when host/port is malformed. No network I/O is attempted."""


class SettingsUnavailableError(KOReaderCtlError):
    """Raised when the settings store cannot be read or written."""


class MappingError(KOReaderCtlError):
    """Raised when a button or command name cannot be resolved."""


class InputSourceError(KOReaderCtlError):
    """Raised when the gamepad input device cannot be opened or read."""


class NetworkError(KOReaderCtlError):
    """Base network error."""


class NetworkTimeoutError(NetworkError):
    """Raised when connect/read/write exceeds the request timeout."""


class NetworkConnectError(NetworkError):
    """Raised when the reader refuses or cannot accept the connection."""


class HTTPStatusError(NetworkError):
    """Raised when the reader answers with an unexpected status code."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnexpectedNetworkError(NetworkError):
    """Raised on any other HTTP client failure."""
