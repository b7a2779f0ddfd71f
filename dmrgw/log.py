"""Levelled logging to standard output and, optionally, to MQTT."""

import json
import sys
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Optional

_MAX_LINE = 499
_LEVELS = " DMIWEF"


class LogLevel(IntEnum):
    """Log severities; 0 used as a threshold switches output off."""

    DEBUG = 1
    MESSAGE = 2
    INFO = 3
    WARNING = 4
    ERROR = 5
    FATAL = 6


_mqtt: Optional[Any] = None
_mqtt_level = 2
_display_level = 2


def log_initialise(display_level: int, mqtt_level: int) -> None:
    """Set the thresholds for printing and for publishing to MQTT."""
    global _display_level, _mqtt_level
    _display_level = int(display_level)
    _mqtt_level = int(mqtt_level)


def set_mqtt(connection: Optional[Any]) -> None:
    """Attach (or with None detach) the MQTT connection that log lines go to."""
    global _mqtt
    _mqtt = connection


def log_finalise() -> None:
    """Close and drop the MQTT connection, if any."""
    global _mqtt
    if _mqtt is not None:
        _mqtt.close()
        _mqtt = None


def _timestamp(now: datetime) -> str:
    return now.strftime("%Y-%m-%d %H:%M:%S.") + f"{now.microsecond // 1000:03d}"


def log(level: int, message: str) -> str:
    """Format, emit and return a log line; a FATAL line exits the program."""
    level = int(level)
    if not 0 <= level < len(_LEVELS):
        raise ValueError(f"Invalid log level: {level}")

    now = datetime.now(timezone.utc)
    line = f"{_LEVELS[level]}: {_timestamp(now)} {message}"[:_MAX_LINE]

    if _mqtt is not None and _mqtt_level != 0 and level >= _mqtt_level:
        _mqtt.publish("log", line)

    if _display_level != 0 and level >= _display_level:
        print(line, file=sys.stdout, flush=True)

    if level == LogLevel.FATAL:
        raise SystemExit(1)

    return line


def write_json_status(status: str) -> None:
    """Publish a timestamped status message as JSON."""
    now = datetime.now(timezone.utc)
    write_json("status", {"timestamp": _timestamp(now), "message": status})


def write_json(top_level: str, payload: Any) -> None:
    """Publish payload wrapped under top_level to the 'json' topic, if MQTT is attached."""
    if _mqtt is not None:
        _mqtt.publish("json", json.dumps({top_level: payload}, separators=(",", ":")))