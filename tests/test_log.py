import json
import re

import pytest

from dmrgw.log import (
    LogLevel,
    log,
    log_finalise,
    log_initialise,
    set_mqtt,
    write_json,
    write_json_status,
)


class FakeConnection:
    def __init__(self):
        self.published = []
        self.closed = False

    def publish(self, topic, data):
        self.published.append((topic, data))
        return True

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_log():
    log_initialise(2, 2)
    set_mqtt(None)
    yield
    log_initialise(2, 2)
    set_mqtt(None)


LINE = re.compile(r"^W: \d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3} hello$")


def test_line_format_and_display(capsys):
    line = log(LogLevel.WARNING, "hello")
    assert LINE.match(line)
    assert capsys.readouterr().out == line + "\n"


def test_below_display_level_not_printed(capsys):
    log_initialise(3, 3)
    line = log(LogLevel.DEBUG, "quiet")
    assert line.startswith("D: ")
    assert capsys.readouterr().out == ""


def test_display_level_zero_disables_output(capsys):
    log_initialise(0, 0)
    log(LogLevel.ERROR, "nothing")
    assert capsys.readouterr().out == ""


def test_long_messages_are_truncated():
    line = log(LogLevel.DEBUG, "x" * 1000)
    assert len(line) == 499


def test_fatal_exits():
    log_initialise(0, 0)
    with pytest.raises(SystemExit) as excinfo:
        log(LogLevel.FATAL, "boom")
    assert excinfo.value.code == 1


def test_invalid_level_raises():
    with pytest.raises(ValueError):
        log(7, "bad")


def test_mqtt_receives_lines_at_or_above_level():
    conn = FakeConnection()
    set_mqtt(conn)
    log_initialise(0, LogLevel.WARNING)
    log(LogLevel.INFO, "skipped")
    line = log(LogLevel.ERROR, "sent")
    assert conn.published == [("log", line)]


def test_mqtt_level_zero_publishes_nothing():
    conn = FakeConnection()
    set_mqtt(conn)
    log_initialise(0, 0)
    log(LogLevel.ERROR, "sent")
    assert conn.published == []


def test_write_json_wraps_payload():
    conn = FakeConnection()
    set_mqtt(conn)
    write_json("status", {"message": "up"})
    topic, data = conn.published[0]
    assert topic == "json"
    assert json.loads(data) == {"status": {"message": "up"}}


def test_write_json_status_carries_message_and_timestamp():
    conn = FakeConnection()
    set_mqtt(conn)
    write_json_status("Logged into DMR Network: BM")
    body = json.loads(conn.published[0][1])["status"]
    assert body["message"] == "Logged into DMR Network: BM"
    assert re.match(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}$", body["timestamp"])


def test_write_json_without_mqtt_is_silent(capsys):
    write_json("status", {"message": "x"})
    assert capsys.readouterr().out == ""


def test_finalise_closes_and_detaches():
    conn = FakeConnection()
    set_mqtt(conn)
    log_finalise()
    assert conn.closed is True
    write_json("status", {})
    assert conn.published == []