"""Data models for debug log entries and upload outcomes."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

SEPARATOR = "|"


def format_timestamp(dt: datetime) -> str:
    """Format as 'yyyy-MM-dd HH:mm:ss.SSS' (local time, millisecond precision)."""
    return dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond // 1000:03d}"


def format_time_of_day(dt: datetime) -> str:
    return dt.strftime("%H:%M:%S.") + f"{dt.microsecond // 1000:03d}"


def single_line(text: str) -> str:
    """Escape line breaks so an entry always occupies exactly one line."""
    return text.replace("\r", "\\r").replace("\n", "\\n")


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    tag: str
    message: str

    @classmethod
    def create(cls, tag: str, message: str, now: datetime | None = None) -> "LogEntry":
        return cls(timestamp=now or datetime.now(), tag=tag, message=message)

    def serialize(self) -> str:
        """Render the on-disk form, newline-terminated."""
        return (
            format_timestamp(self.timestamp)
            + SEPARATOR + single_line(self.tag)
            + SEPARATOR + single_line(self.message)
            + "\n"
        )

    def console_line(self) -> str:
        return format_time_of_day(self.timestamp) + SEPARATOR + self.tag + SEPARATOR + self.message

    @classmethod
    def parse(cls, line: str) -> "LogEntry | None":
        """Parse a serialized line back into an entry.

        The message may itself contain the separator; only the first two
        separators split fields. Returns None for lines that do not parse.
        """
        parts = line.rstrip("\n").split(SEPARATOR, 2)
        if len(parts) != 3:
            return None
        raw_ts, tag, message = parts
        try:
            timestamp = datetime.strptime(raw_ts, "%Y-%m-%d %H:%M:%S.%f")
        except ValueError:
            return None
        return cls(timestamp=timestamp, tag=tag, message=message)


class UploadStatus(Enum):
    UPLOADED = "uploaded"
    REJECTED = "rejected"
    NEEDS_AUTH = "needs_auth"
    SERVER_ERROR = "server_error"
    HTTP_ERROR = "http_error"
    PROTOCOL_ERROR = "protocol_error"
    TRANSPORT_ERROR = "transport_error"
    NOT_SENT = "not_sent"
    DISPATCHED = "dispatched"


@dataclass
class UploadOutcome:
    """Result of a single upload attempt."""
    status: UploadStatus
    entries_sent: int
    status_code: int | None = None
    success: bool | None = None
    detail: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status is UploadStatus.UPLOADED
