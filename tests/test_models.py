"""Tests for entry formatting and parsing."""

from datetime import datetime

from debuglog.models import LogEntry, UploadOutcome, UploadStatus, format_time_of_day, format_timestamp

NOW = datetime(2016, 10, 5, 16, 55, 7, 920123)


class TestFormatting:
    def test_timestamp_millisecond_precision(self):
        assert format_timestamp(NOW) == "2016-10-05 16:55:07.920"

    def test_time_of_day(self):
        assert format_time_of_day(NOW) == "16:55:07.920"

    def test_zero_padded_millis(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5, 7000)) == "2024-01-02 03:04:05.007"


class TestLogEntry:
    def test_serialize(self):
        entry = LogEntry.create("main", "bbbbbbbb", now=NOW)
        assert entry.serialize() == "2016-10-05 16:55:07.920|main|bbbbbbbb\n"

    def test_serialize_escapes_line_breaks(self):
        entry = LogEntry.create("ma\nin", "one\ntwo\r\nthree", now=NOW)
        line = entry.serialize()
        assert line == "2016-10-05 16:55:07.920|ma\\nin|one\\ntwo\\r\\nthree\n"
        assert line.count("\n") == 1

    def test_console_line(self):
        entry = LogEntry.create("main", "bbbbbbbb", now=NOW)
        assert entry.console_line() == "16:55:07.920|main|bbbbbbbb"

    def test_parse(self):
        entry = LogEntry.parse("2016-10-05 16:55:07.920|main|bbbbbbbb\n")
        assert entry.tag == "main"
        assert entry.message == "bbbbbbbb"
        assert entry.timestamp == datetime(2016, 10, 5, 16, 55, 7, 920000)

    def test_message_may_contain_separator(self):
        entry = LogEntry.parse("2016-10-05 16:55:07.920|net|status|200|ok")
        assert entry.tag == "net"
        assert entry.message == "status|200|ok"

    def test_parse_rejects_malformed(self):
        assert LogEntry.parse("no separators here") is None
        assert LogEntry.parse("yesterday|main|msg") is None

    def test_create_defaults_to_now(self):
        before = datetime.now()
        entry = LogEntry.create("t", "m")
        assert entry.timestamp >= before


class TestUploadOutcome:
    def test_only_uploaded_counts_as_delivered(self):
        assert UploadOutcome(UploadStatus.UPLOADED, 3).delivered
        for status in UploadStatus:
            if status is not UploadStatus.UPLOADED:
                assert not UploadOutcome(status, 3).delivered
