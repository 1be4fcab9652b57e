"""Error types raised by the store, serializer and uploader layers.

DebugLog catches every one of these at its boundary and reports them,
so none of them reaches the host application.
"""


class DebugLogError(Exception):
    """Base class for all debug logger failures."""

    kind = "error"


class FileIOError(DebugLogError):
    """Raised when the log file cannot be created, appended, read or deleted."""

    kind = "file_io"


class SerializationError(DebugLogError):
    """Raised when entries cannot be encoded as a JSON upload body."""

    kind = "serialization"


class NetworkError(DebugLogError):
    """Raised on transport-level failures (connect, timeout, reset)."""

    kind = "network"


class ServerError(DebugLogError):
    """Raised for a non-200 response the caller wants treated as an error."""

    kind = "server"

    def __init__(self, status_code: int, payload: str = ""):
        super().__init__(f"server returned {status_code}")
        self.status_code = status_code
        self.payload = payload


class ProtocolError(DebugLogError):
    """Raised when a 200 response lacks a boolean 'success' field."""

    kind = "protocol"
