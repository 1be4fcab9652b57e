"""Console sink and structured failure channel for the debug logger."""

import logging
import sys
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from debuglog.models import SEPARATOR, format_time_of_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Report:
    message: str
    error_kind: str | None = None


class Reporter:
    """Writes console lines and keeps a bounded history of reports.

    Console lines go to ``stream`` as ``<HH:mm:ss.SSS>|<tag>|<message>``.
    Reports are also forwarded to the stdlib logger, so failures show up in
    diagnostic output while never being raised to the caller.
    """

    def __init__(self, stream=None, tag: str = "DebugLog", history: int = 500, time_func=None):
        self._stream = stream
        self._tag = tag
        self._time_func = time_func or datetime.now
        self._lock = threading.Lock()
        self._reports: deque[Report] = deque(maxlen=history)

    @property
    def reports(self) -> list[Report]:
        with self._lock:
            return list(self._reports)

    def errors(self) -> list[Report]:
        return [r for r in self.reports if r.error_kind is not None]

    def messages(self) -> list[str]:
        return [r.message for r in self.reports]

    def echo(self, tag: str, message: str):
        """Write a console-only line."""
        line = format_time_of_day(self._time_func()) + SEPARATOR + tag + SEPARATOR + message
        self.write_line(line)

    def write_line(self, line: str):
        stream = self._stream or sys.stdout
        with self._lock:
            print(line, file=stream, flush=True)

    def report(self, message: str, error: BaseException | None = None):
        """Record a notice or failure and echo it under the reporter tag."""
        kind = None
        if error is not None:
            kind = getattr(error, "kind", type(error).__name__)
            message = f"{message} {error}".rstrip()
            logger.warning("%s (%s)", message, kind)
        else:
            logger.debug("%s", message)

        with self._lock:
            self._reports.append(Report(message=message, error_kind=kind))
        self.echo(self._tag, message)
