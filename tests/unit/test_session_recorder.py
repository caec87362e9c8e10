"""
Unit tests for the recording session lifecycle and CSV output.
"""

import os
from datetime import datetime

import pytest

from sensa_companion.buffer.session_recorder import RecordingSession, SessionStatus
from sensa_companion.decoder import SensorRecord

HEADER = "Time,MQ3,MQ5,MQ131,MQ135,MP503,Temperature,Humidity\n"
STARTED_AT = datetime(2024, 3, 5, 9, 59, 58)


def make_record(hour, minute, second, **values):
    return SensorRecord(captured_at=datetime(2024, 3, 5, hour, minute, second), values=values)


@pytest.fixture
def session(tmp_path):
    return RecordingSession(output_dir=str(tmp_path), clock=lambda: STARTED_AT)


def read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


class TestStart:
    def test_start_creates_file_with_header(self, session, tmp_path):
        assert session.start() is SessionStatus.STARTED
        assert session.active

        assert os.path.basename(session.path) == "Session 05-03-2024 09-59-58.csv"
        assert read(session.path) == HEADER

    def test_start_twice_keeps_original_sink(self, tmp_path):
        ticks = iter([datetime(2024, 3, 5, 10, 0, 0), datetime(2024, 3, 5, 10, 0, 5)])
        session = RecordingSession(output_dir=str(tmp_path), clock=lambda: next(ticks))
        session.start()
        first = session.path

        assert session.start() is SessionStatus.ALREADY_ACTIVE
        assert session.active
        assert session.path == first
        assert os.listdir(tmp_path) == [os.path.basename(first)]

    def test_start_creates_output_dir(self, tmp_path):
        target = tmp_path / "recordings" / "today"
        session = RecordingSession(output_dir=str(target), clock=lambda: STARTED_AT)
        session.start()

        assert target.is_dir()

    def test_unwritable_output_dir_is_fatal(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        session = RecordingSession(output_dir=str(blocker), clock=lambda: STARTED_AT)

        with pytest.raises(OSError):
            session.start()
        assert not session.active


class TestStop:
    def test_stop_when_inactive(self, session):
        assert session.stop() is SessionStatus.NOT_ACTIVE
        assert not session.active

    def test_stop_ends_recording_and_keeps_file(self, session):
        session.start()
        assert session.stop() is SessionStatus.STOPPED

        assert not session.active
        assert os.path.exists(session.path)

    def test_restart_opens_a_new_file(self, tmp_path):
        ticks = iter([datetime(2024, 3, 5, 10, 0, 0), datetime(2024, 3, 5, 10, 1, 0)])
        session = RecordingSession(output_dir=str(tmp_path), clock=lambda: next(ticks))
        session.start()
        first = session.path
        session.stop()
        session.start()

        assert session.path != first
        assert sorted(os.listdir(tmp_path)) == [
            "Session 05-03-2024 10-00-00.csv",
            "Session 05-03-2024 10-01-00.csv",
        ]

    def test_restart_within_same_second_keeps_previous_file(self, session):
        session.start()
        session.record(make_record(10, 0, 0, MQ3="1"))
        first = session.path
        session.stop()
        session.start()

        assert session.path != first
        assert os.path.basename(session.path) == "Session 05-03-2024 09-59-58 (2).csv"
        assert read(first) == HEADER + "10:00:00,1\n"
        assert read(session.path) == HEADER


class TestRecord:
    def test_record_while_inactive_is_noop(self, session, tmp_path):
        assert session.record(make_record(10, 0, 0, MQ3="1")) is False
        assert os.listdir(tmp_path) == []

    def test_record_after_stop_does_not_touch_file(self, session):
        session.start()
        session.stop()
        session.record(make_record(10, 0, 0, MQ3="1"))

        assert read(session.path) == HEADER

    def test_records_are_flushed_immediately(self, session):
        """Rows are on disk without closing the sink."""
        session.start()
        session.record(make_record(10, 0, 0, MQ3="12 ", MQ5="3"))
        session.record(make_record(10, 0, 1, MQ3="13", MQ5="4"))

        assert read(session.path) == HEADER + "10:00:00,12 ,3\n10:00:01,13,4\n"

    def test_values_are_written_unquoted(self, session):
        """Device text reaches the file byte for byte, quotes and commas included."""
        session.start()
        session.record(make_record(10, 0, 0, MQ3='1"2', MQ5="3,4"))

        assert read(session.path) == HEADER + '10:00:00,1"2,3,4\n'

    def test_close_deactivates(self, session):
        session.start()
        session.close()

        assert not session.active
        assert session.record(make_record(10, 0, 0, MQ3="1")) is False
