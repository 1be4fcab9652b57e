"""End-to-end tests: logger -> httpx -> Flask collector, and the CLI."""

import io
import os

import httpx

from debuglog.collector import create_app
from debuglog.config import Config
from debuglog.debug_log import DebugLog
from debuglog.preferences import LOGGING_ENABLED_KEY, PreferenceStore
from debuglog.reporter import Reporter
from debuglog.uploader import LogUploader
from main import main


def _wire(tmp_path, app, **overrides):
    config = Config(
        log_dir=str(tmp_path / "logs"),
        server="http://collector.test",
        preferences_file=str(tmp_path / "prefs.json"),
        **overrides,
    )
    prefs = PreferenceStore(config.preferences_file)
    prefs.set_bool(LOGGING_ENABLED_KEY, True)
    uploader = LogUploader(config.upload_url, transport=httpx.WSGITransport(app=app))
    reporter = Reporter(stream=io.StringIO())
    return DebugLog(config, preferences=prefs, reporter=reporter, uploader=uploader), uploader


class TestEndToEnd:
    def test_threshold_upload_reaches_collector(self, tmp_path):
        app = create_app()
        debug, uploader = _wire(tmp_path, app, size_threshold_kb=1.0)
        try:
            written = []
            while not app.config["collected"].uploads:
                debug.record("net", "x" * 100)
                if not debug.uploading and not app.config["collected"].uploads:
                    written = debug.read_all()
                debug.wait_for_upload(timeout=5)

            [uploaded] = app.config["collected"].uploads
            assert uploaded == written
            # Only the entry that crossed the threshold is left behind
            assert len(debug.read_all()) == 1
            assert debug.last_outcome.delivered
        finally:
            debug.close()
            uploader.close()

    def test_forbidden_collector_drops_log(self, tmp_path):
        debug, uploader = _wire(tmp_path, create_app(fail_with=403))
        try:
            debug.record("main", "secret")
            debug.upload_and_truncate()
            assert debug.wait_for_upload(timeout=5)
            assert "*** Needs auth, not prompting" in debug.reporter.messages()
            assert debug.read_all() == []
        finally:
            debug.close()
            uploader.close()

    def test_exit_upload_reaches_collector(self, tmp_path):
        app = create_app()
        debug, uploader = _wire(tmp_path, app)
        debug.record("AppDelegate", "applicationWillResignActive")
        entries = debug.read_all()
        debug.upload_and_truncate(synchronous=True)
        debug.close()
        uploader.close(timeout=5)
        assert app.config["collected"].uploads == [entries]


class TestCli:
    def test_enable_record_read_clear(self, tmp_path, capsys):
        log_dir = str(tmp_path / "cli")
        assert main(["--log-dir", log_dir, "enable"]) == 0
        assert main(["--log-dir", log_dir, "record", "main", "hello"]) == 0
        assert main(["--log-dir", log_dir, "record", "main", "quiet", "--no-echo"]) == 0
        capsys.readouterr()

        assert main(["--log-dir", log_dir, "read"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert len(out) == 2
        assert out[0].endswith("|main|hello")

        assert main(["--log-dir", log_dir, "status"]) == 0
        assert "logging_enabled=True" in capsys.readouterr().out

        assert main(["--log-dir", log_dir, "clear"]) == 0
        assert not os.path.exists(os.path.join(log_dir, "debug.log"))

    def test_disabled_by_default(self, tmp_path):
        log_dir = str(tmp_path / "cli")
        main(["--log-dir", log_dir, "record", "main", "hello"])
        assert not os.path.exists(os.path.join(log_dir, "debug.log"))

    def test_upload_with_empty_log(self, tmp_path, capsys):
        log_dir = str(tmp_path / "cli")
        assert main(["--log-dir", log_dir, "upload"]) == 0
        assert "Nothing to upload" in capsys.readouterr().out

    def test_invalid_policy_exit_code(self, tmp_path):
        assert main(["--log-dir", str(tmp_path), "--truncate-policy", "never", "status"]) == 2

    def test_setting_flags_reach_config(self, tmp_path, capsys):
        log_dir = str(tmp_path / "cli")
        assert main(["--log-dir", log_dir, "--threshold-kb", "64", "--server", "http://cli-host", "status"]) == 0
        out = capsys.readouterr().out
        assert "threshold_kb=64.0" in out
        assert "server=http://cli-host/api/error-logs/add" in out
