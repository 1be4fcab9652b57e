import io
import json
import threading

import httpx
import pytest

from debuglog.config import Config
from debuglog.debug_log import DebugLog
from debuglog.preferences import LOGGING_ENABLED_KEY, PreferenceStore
from debuglog.reporter import Reporter
from debuglog.uploader import LogUploader


class FakeCollector:
    """httpx transport handler that records uploads and answers like the server.

    ``gate`` (when set up via ``hold()``) blocks every request until
    ``release()`` is called, keeping an upload in flight.
    """

    def __init__(self, status_code: int = 200, body=None):
        self.status_code = status_code
        self.body = {"success": True} if body is None else body
        self.requests: list[httpx.Request] = []
        self.uploads: list[list[str]] = []
        self._gate: threading.Event | None = None
        self.raise_error: Exception | None = None

    def hold(self):
        self._gate = threading.Event()

    def release(self):
        if self._gate is not None:
            self._gate.set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.uploads.append(json.loads(request.content)["log"])
        if self._gate is not None:
            self._gate.wait(timeout=30)
        if self.raise_error is not None:
            raise self.raise_error
        if isinstance(self.body, (bytes, str)):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def config(tmp_path):
    return Config(
        log_dir=str(tmp_path / "logs"),
        server="http://collector.test",
        preferences_file=str(tmp_path / "prefs.json"),
    )


@pytest.fixture
def preferences(config):
    prefs = PreferenceStore(config.preferences_file)
    prefs.set_bool(LOGGING_ENABLED_KEY, True)
    return prefs


@pytest.fixture
def console():
    return io.StringIO()


@pytest.fixture
def reporter(console):
    return Reporter(stream=console)


@pytest.fixture
def collector():
    return FakeCollector()


@pytest.fixture
def make_log(config, preferences, reporter, collector):
    """Build a DebugLog wired to the fake collector; closes them all afterwards."""
    created = []

    def _make(cfg: Config | None = None, **kwargs):
        cfg = cfg or config
        uploader = LogUploader(cfg.upload_url, transport=collector.transport)
        debug = DebugLog(cfg, preferences=preferences, reporter=reporter, uploader=uploader, **kwargs)
        created.append((debug, uploader))
        return debug

    yield _make

    collector.release()
    for debug, uploader in created:
        debug.close(timeout=5)
        uploader.close(timeout=5)


def fill_log(path, kb: int):
    """Write ``kb`` kilobytes of well-formed entries (1 KiB per line)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    prefix = "2024-01-15 08:23:45.000|filler|"
    line = prefix + "x" * (1023 - len(prefix)) + "\n"
    path.write_text(line * kb, encoding="utf-8")
    return [line.rstrip("\n")] * kb
