"""HTTP uploader for the accumulated debug log."""

import json
import logging
import threading

import httpx

from debuglog.errors import DebugLogError, NetworkError, ProtocolError, SerializationError, ServerError
from debuglog.models import UploadOutcome, UploadStatus

logger = logging.getLogger(__name__)

UPLOAD_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json; charset=utf-8",
    "X-Requested-With": "XMLHttpRequest",
}


def build_payload(entries: list[str]) -> bytes:
    """Encode entries as the ``{"log": [...]}`` request body."""
    try:
        return json.dumps({"log": list(entries)}, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError, UnicodeEncodeError) as e:
        raise SerializationError(f"Cannot create JSON debug log: {e}") from e


class LogUploader:
    """POSTs log entries to the collector endpoint.

    ``send`` is the blocking primitive. ``dispatch`` runs it on a worker
    thread and reports back through a completion callback; ``dispatch_detached``
    is fire-and-forget and nothing observes the response.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._url = url
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._closed = False
        self._detached: list[threading.Thread] = []

    @property
    def url(self) -> str:
        return self._url

    def send(self, entries: list[str]) -> UploadOutcome:
        """Upload entries and interpret the response.

        Returns an outcome for 200 and 403 responses. Raises NetworkError on
        transport failure, ProtocolError when a 200 body has no boolean
        'success', and ServerError for any other status.
        """
        payload = build_payload(entries)
        try:
            response = self._client.post(self._url, content=payload, headers=UPLOAD_HEADERS)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, RuntimeError) as e:
            # Bad URLs and a closed client surface as ValueError / RuntimeError
            raise NetworkError(f"Error calling POST on {self._url}: {e}") from e

        count = len(entries)
        if response.status_code == 200:
            try:
                body = response.json()
            except ValueError as e:
                raise ProtocolError(f"Response is not JSON: {e}") from e
            success = body.get("success") if isinstance(body, dict) else None
            if not isinstance(success, bool):
                raise ProtocolError("Could not get success as Bool from json")
            return UploadOutcome(
                status=UploadStatus.UPLOADED if success else UploadStatus.REJECTED,
                entries_sent=count,
                status_code=200,
                success=success,
            )

        if response.status_code == 403:
            # Never prompt for auth; the log is dropped rather than block the app
            return UploadOutcome(
                status=UploadStatus.NEEDS_AUTH,
                entries_sent=count,
                status_code=403,
                detail="Needs auth, not prompting",
            )

        raise ServerError(response.status_code, response.text)

    def dispatch(self, entries: list[str], on_complete) -> threading.Thread:
        """Send on a worker thread, then call ``on_complete(outcome, error)``."""

        def _run():
            outcome, error = None, None
            try:
                outcome = self.send(entries)
            except DebugLogError as e:
                error = e
            except Exception as e:
                logger.exception("Unexpected upload failure")
                error = NetworkError(f"Upload to {self._url} failed: {e}")
            finally:
                if outcome is None and error is None:
                    error = NetworkError(f"Upload to {self._url} was interrupted")
                on_complete(outcome, error)

        t = threading.Thread(target=_run, name="debuglog-upload", daemon=True)
        t.start()
        return t

    def dispatch_detached(self, entries: list[str]) -> threading.Thread:
        """Fire-and-forget upload used at exit; the result is only logged."""

        def _run():
            try:
                outcome = self.send(entries)
                logger.debug("Detached upload finished: %s", outcome.status.value)
            except DebugLogError as e:
                logger.debug("Detached upload failed: %s", e)
            except Exception:
                logger.exception("Unexpected failure in detached upload")

        # Non-daemon: the interpreter finishes the transfer before exiting
        t = threading.Thread(target=_run, name="debuglog-upload-detached", daemon=False)
        t.start()
        self._detached.append(t)
        return t

    def close(self, timeout: float | None = 10.0):
        """Wait for detached uploads, then release the connection pool."""
        for t in self._detached:
            t.join(timeout=timeout)
        self._detached = [t for t in self._detached if t.is_alive()]
        if self._detached:
            logger.warning("%d detached upload(s) still running", len(self._detached))
            return
        if not self._closed:
            self._client.close()
            self._closed = True


def outcome_from_error(error: DebugLogError, entries_sent: int) -> UploadOutcome:
    """Map an upload failure onto an outcome for bookkeeping."""
    if isinstance(error, ServerError):
        status = UploadStatus.SERVER_ERROR if error.status_code == 500 else UploadStatus.HTTP_ERROR
        return UploadOutcome(
            status=status,
            entries_sent=entries_sent,
            status_code=error.status_code,
            detail=error.payload,
        )
    if isinstance(error, SerializationError):
        return UploadOutcome(UploadStatus.NOT_SENT, 0, detail=str(error))
    if isinstance(error, ProtocolError):
        return UploadOutcome(UploadStatus.PROTOCOL_ERROR, entries_sent, status_code=200, detail=str(error))
    return UploadOutcome(UploadStatus.TRANSPORT_ERROR, entries_sent, detail=str(error))
