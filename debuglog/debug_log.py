"""Tagged debug logger with a size-triggered upload policy.

Entries are appended to a local file and optionally echoed to the console.
Once the file grows past ``size_threshold_kb`` the next ``record`` call
uploads the accumulated log and truncates it. While an upload is in flight,
new entries are also kept in a bounded overflow buffer that rides along
with the next upload.

Every failure is reported through the ``Reporter`` and swallowed; nothing
here raises into the host application.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from debuglog.config import Config
from debuglog.errors import DebugLogError, FileIOError, NetworkError, ProtocolError, ServerError
from debuglog.models import LogEntry, UploadOutcome, UploadStatus
from debuglog.preferences import LOGGING_ENABLED_KEY, PreferenceStore
from debuglog.reporter import Reporter
from debuglog.store import LogStore, OverflowBuffer
from debuglog.uploader import LogUploader, outcome_from_error

logger = logging.getLogger(__name__)

TAG = "DebugLog"


class UploadState(Enum):
    IDLE = "idle"
    UPLOADING = "uploading"


class TruncatePolicy(Enum):
    ALWAYS_CLEAR = "always_clear"
    RETAIN_ON_FAILURE = "retain_on_failure"


@dataclass
class _InFlight:
    """Bookkeeping for the upload currently in flight.

    The log file is always ``file_lines`` snapshotted lines followed by one
    line per entry in ``appended``; each flag says whether that entry was
    also routed into the overflow buffer.
    """
    file_lines: int
    drained: list[str]
    appended: list[bool] = field(default_factory=list)

    def forget_file(self):
        self.file_lines = 0
        self.appended = []

    def consistent_with(self, lines: list[str]) -> bool:
        return len(lines) == self.file_lines + len(self.appended)

    def unrouted(self, lines: list[str]) -> list[str]:
        """Drop lines appended during the upload that the overflow buffer also holds."""
        if not self.consistent_with(lines):
            return lines
        tail = lines[self.file_lines:]
        return lines[:self.file_lines] + [
            line for line, routed in zip(tail, self.appended) if not routed
        ]


class DebugLog:
    def __init__(
        self,
        config: Config,
        preferences: PreferenceStore | None = None,
        reporter: Reporter | None = None,
        uploader: LogUploader | None = None,
        setup: bool = False,
        time_func: Callable[[], datetime] | None = None,
    ):
        self._config = config
        self._preferences = preferences or PreferenceStore(config.preferences_file)
        self._reporter = reporter or Reporter(tag=TAG)
        self._owns_uploader = uploader is None
        self._uploader = uploader or LogUploader(config.upload_url, timeout=config.request_timeout)
        self._time_func = time_func or datetime.now
        self._policy = TruncatePolicy(config.truncate_policy)

        self._store = LogStore(config.log_path)
        self._overflow = OverflowBuffer(config.overflow_cap)
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._state = UploadState.IDLE
        self._in_flight: _InFlight | None = None
        self._last_outcome: UploadOutcome | None = None

        self._logging_enabled = self.is_logging_enabled()

        if setup:
            self.record(TAG, "New debugging instance created")
            self.pp(TAG, f"Logging enabled: *** {self._logging_enabled} ***")

    @property
    def config(self) -> Config:
        return self._config

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    @property
    def store(self) -> LogStore:
        return self._store

    @property
    def overflow(self) -> OverflowBuffer:
        return self._overflow

    @property
    def state(self) -> UploadState:
        with self._lock:
            return self._state

    @property
    def uploading(self) -> bool:
        return self.state is UploadState.UPLOADING

    @property
    def last_outcome(self) -> UploadOutcome | None:
        with self._lock:
            return self._last_outcome

    # -- logging switch ---------------------------------------------------

    def enable_logging(self):
        self._set_logging(True)

    def disable_logging(self):
        self._set_logging(False)

    def _set_logging(self, enabled: bool):
        try:
            self._preferences.set_bool(LOGGING_ENABLED_KEY, enabled)
        except FileIOError as e:
            self._reporter.report(f"Could not save {LOGGING_ENABLED_KEY} preference.", e)

    def is_logging_enabled(self) -> bool:
        """Read the persisted switch. ``record`` uses the value cached at session start."""
        return self._preferences.get_bool(LOGGING_ENABLED_KEY)

    def refresh(self) -> bool:
        """Start a new session: re-read the persisted switch into the cache."""
        self._preferences.reload()
        self._logging_enabled = self.is_logging_enabled()
        return self._logging_enabled

    # -- entries ----------------------------------------------------------

    def pp(self, tag: str, message: str):
        """Print to the console only; never touches the log file."""
        self._reporter.echo(tag, message)

    def record(self, tag: str, message: str, echo: bool = True):
        entry = LogEntry.create(tag, message, now=self._time_func())
        if echo:
            self._reporter.write_line(entry.console_line())

        if not self._logging_enabled:
            return

        line = entry.serialize()
        with self._lock:
            routed = False
            # Soft limit: checked once, before this entry is appended
            if self._size_kb_locked() > self._config.size_threshold_kb:
                if self._state is UploadState.UPLOADING:
                    routed = True
                    if not self._overflow.append(line.rstrip("\n")):
                        self._reporter.report("FallbackBuffer full. Emptied it.")
                else:
                    self._begin_upload_locked()

            try:
                self._store.append(line)
            except FileIOError as e:
                self._reporter.report(f"Error creating {self._store.path}", e)
                return

            if self._in_flight is not None:
                self._in_flight.appended.append(routed)

    def read_all(self) -> list[str]:
        with self._lock:
            return self._read_locked()

    def clear(self):
        with self._lock:
            self._clear_locked()

    # -- upload -----------------------------------------------------------

    def upload_and_truncate(self, synchronous: bool = False):
        """Upload the log plus any overflow entries, then truncate the file.

        The asynchronous form dispatches the request and truncates in the
        completion handler. The synchronous (exit) form truncates first and
        hands the request off without observing the response.
        """
        with self._lock:
            if synchronous:
                self._upload_on_exit_locked()
            else:
                self._begin_upload_locked()

    def wait_for_upload(self, timeout: float | None = None) -> bool:
        """Block until no upload is in flight. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._state is UploadState.IDLE, timeout=timeout)

    def close(self, timeout: float | None = 10.0):
        if not self.wait_for_upload(timeout):
            logger.warning("Upload still in flight after %.1fs, closing anyway", timeout)
        if self._owns_uploader:
            self._uploader.close()

    # -- internals (call with self._lock held) ------------------------------

    def _size_kb_locked(self) -> float:
        try:
            return self._store.size_kb()
        except FileIOError as e:
            self._reporter.report("Could not get attributes of debug file.", e)
            return 0.0

    def _read_locked(self) -> list[str]:
        try:
            return self._store.read_all()
        except FileIOError as e:
            self._reporter.report("Could not read debug file.", e)
            return []

    def _snapshot_locked(self) -> tuple[list[str], list[str]]:
        file_entries = self._read_locked() if self._store.exists() else []
        return file_entries, self._overflow.drain()

    def _clear_locked(self):
        try:
            removed = self._store.delete()
        except FileIOError as e:
            self._reporter.report("Could not delete debug file.", e)
            return
        if not removed:
            self._reporter.report("Path does not exist, cannot remove log")
            return
        self._reporter.report("Removed log file")
        if self._in_flight is not None:
            self._in_flight.forget_file()

    def _begin_upload_locked(self):
        # Check-and-set is atomic under self._lock
        if self._state is UploadState.UPLOADING:
            self._reporter.report("Upload already in progress")
            return

        file_entries, drained = self._snapshot_locked()
        entries = file_entries + drained
        if not entries:
            self._reporter.report("Nothing to upload")
            return

        self._state = UploadState.UPLOADING
        self._in_flight = _InFlight(file_lines=len(file_entries), drained=drained)
        self._reporter.report("Sending debug log")
        logger.info("Uploading %d entries to %s", len(entries), self._uploader.url)
        self._uploader.dispatch(entries, self._on_upload_complete)

    def _upload_on_exit_locked(self):
        file_entries, drained = self._snapshot_locked()
        if self._in_flight is not None:
            file_entries = self._in_flight.unrouted(file_entries)
        entries = file_entries + drained
        self._reporter.report("Sending debug log")
        self._clear_locked()
        if not entries:
            return
        logger.info("Handing off %d entries to %s", len(entries), self._uploader.url)
        self._uploader.dispatch_detached(entries)
        self._last_outcome = UploadOutcome(UploadStatus.DISPATCHED, len(entries))

    def _on_upload_complete(self, outcome: UploadOutcome | None, error: DebugLogError | None):
        with self._lock:
            try:
                in_flight = self._in_flight
                sent = in_flight.file_lines + len(in_flight.drained) if in_flight else 0
                if error is not None:
                    outcome = outcome_from_error(error, sent)
                    self._report_failure(error)
                else:
                    self._report_outcome(outcome)
                self._last_outcome = outcome
                if in_flight is not None:
                    self._truncate_locked(in_flight, outcome)
            finally:
                self._state = UploadState.IDLE
                self._in_flight = None
                self._idle.notify_all()

    def _report_outcome(self, outcome: UploadOutcome):
        if outcome.status is UploadStatus.NEEDS_AUTH:
            self._reporter.report("sendLog failed, response code: 403")
            self._reporter.report("*** Needs auth, not prompting")
        else:
            self._reporter.report(f"DebugLog uploaded: {outcome.success}")

    def _report_failure(self, error: DebugLogError):
        path = self._config.upload_path
        if isinstance(error, NetworkError):
            self._reporter.report(f"Error, calling POST on {path}", error)
        elif isinstance(error, ProtocolError):
            self._reporter.report("Could not parse upload response.", error)
        elif isinstance(error, ServerError) and error.status_code == 500:
            self._reporter.report(f"{path} returned 500. Payload: {error.payload}", error)
        elif isinstance(error, ServerError):
            self._reporter.report(f"sendLog failed: {error.status_code}", error)
        else:
            self._reporter.report("Error, cannot create JSON debug log.", error)

    def _truncate_locked(self, in_flight: _InFlight, outcome: UploadOutcome):
        """Drop what was uploaded, plus lines already held by the overflow buffer."""
        lines = self._read_locked() if self._store.exists() else []
        if not in_flight.consistent_with(lines):
            logger.warning(
                "Log file changed outside the logger during upload (%d lines, expected %d)",
                len(lines), in_flight.file_lines + len(in_flight.appended),
            )
        lines = in_flight.unrouted(lines)
        uploaded = lines[:in_flight.file_lines]
        tail = lines[in_flight.file_lines:]

        # A transport failure never reached the server, so nothing is dropped
        retain = outcome.status is UploadStatus.TRANSPORT_ERROR or (
            not outcome.delivered and self._policy is TruncatePolicy.RETAIN_ON_FAILURE
        )
        keep = uploaded + in_flight.drained + tail if retain else tail

        try:
            if keep:
                self._store.rewrite(keep)
                if len(keep) > len(tail):
                    self._reporter.report(f"Kept {len(keep)} entries after failed upload")
            elif self._store.delete():
                self._reporter.report("Removed log file")
        except FileIOError as e:
            self._reporter.report("Could not truncate debug file.", e)
