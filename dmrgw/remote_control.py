"""Parsing of remote control commands received over MQTT."""

import re
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from dmrgw.log import LogLevel, log

_ENABLE_ARGS = 2
_DISABLE_ARGS = 2
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


class RemoteCommand(Enum):
    """Commands the gateway accepts from remote control."""

    ENABLE_NETWORK1 = auto()
    ENABLE_NETWORK2 = auto()
    ENABLE_NETWORK3 = auto()
    ENABLE_NETWORK4 = auto()
    ENABLE_NETWORK5 = auto()
    ENABLE_NETWORK6 = auto()
    ENABLE_NETWORK7 = auto()
    ENABLE_NETWORK8 = auto()
    ENABLE_XLX = auto()
    DISABLE_NETWORK1 = auto()
    DISABLE_NETWORK2 = auto()
    DISABLE_NETWORK3 = auto()
    DISABLE_NETWORK4 = auto()
    DISABLE_NETWORK5 = auto()
    DISABLE_NETWORK6 = auto()
    DISABLE_NETWORK7 = auto()
    DISABLE_NETWORK8 = auto()
    DISABLE_XLX = auto()
    CONNECTION_STATUS = auto()
    CONFIG_HOSTS = auto()
    NONE = auto()


_ENABLE_TARGETS = {
    "net1": RemoteCommand.ENABLE_NETWORK1,
    "net2": RemoteCommand.ENABLE_NETWORK2,
    "net3": RemoteCommand.ENABLE_NETWORK3,
    "net4": RemoteCommand.ENABLE_NETWORK4,
    "net5": RemoteCommand.ENABLE_NETWORK5,
    "xlx": RemoteCommand.ENABLE_XLX,
}

_DISABLE_TARGETS = {
    "net1": RemoteCommand.DISABLE_NETWORK1,
    "net2": RemoteCommand.DISABLE_NETWORK2,
    "net3": RemoteCommand.DISABLE_NETWORK3,
    "net4": RemoteCommand.DISABLE_NETWORK4,
    "net5": RemoteCommand.DISABLE_NETWORK5,
    "xlx": RemoteCommand.DISABLE_XLX,
}

# Number of arguments each command carries; none of the current commands take any.
_ARG_COUNTS: Dict[RemoteCommand, int] = {}


def _atoi(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


class RemoteControl:
    """Turns command strings into RemoteCommand values and publishes the reply.

    ``host`` supplies ``build_network_status_string()`` and
    ``build_network_hosts_string()``; ``mqtt`` is anything with ``publish(topic, text)``.
    """

    def __init__(self, host: Optional[Any], mqtt: Optional[Any] = None) -> None:
        self._host = host
        self._mqtt = mqtt
        self._command = RemoteCommand.NONE
        self._args: List[str] = []

    @property
    def command(self) -> RemoteCommand:
        return self._command

    def process_command(self, command: str) -> RemoteCommand:
        """Parse a command line, publish "OK", "KO" or the requested report, and return it."""
        self._command = RemoteCommand.NONE
        self._args = command.split()

        if not self._args:
            raise ValueError("Empty remote command")

        reply = "OK"
        verb = self._args[0]

        if verb == "enable" and len(self._args) >= _ENABLE_ARGS:
            target = _ENABLE_TARGETS.get(self._args[1])
            if target is None:
                reply = "KO"
            else:
                self._command = target
        elif verb == "disable" and len(self._args) >= _DISABLE_ARGS:
            target = _DISABLE_TARGETS.get(self._args[1])
            if target is None:
                reply = "KO"
            else:
                self._command = target
        elif verb == "status":
            reply = self._host.build_network_status_string() if self._host is not None else "KO"
            self._command = RemoteCommand.CONNECTION_STATUS
        elif verb == "hosts":
            reply = self._host.build_network_hosts_string() if self._host is not None else "KO"
            self._command = RemoteCommand.CONFIG_HOSTS
        else:
            reply = "KO"

        valid = self._command is not RemoteCommand.NONE
        message = f"{'Valid' if valid else 'Invalid'} remote command of \"{command}\" received"[:199]

        if valid:
            log(LogLevel.MESSAGE, message)
        else:
            self._args = []
            log(LogLevel.WARNING, message)

        if self._mqtt is not None:
            self._mqtt.publish("response", reply)

        return self._command

    def arg_count(self) -> int:
        """Number of arguments the current command carries."""
        return _ARG_COUNTS.get(self._command, 0)

    def arg_string(self, n: int) -> str:
        """The n-th argument of the current command, or "" if it has none."""
        if n >= self.arg_count() or n >= len(self._args):
            return ""
        return self._args[n]

    def arg_uint(self, n: int) -> int:
        """The n-th argument as an unsigned integer, 0 if absent or not a number."""
        return _atoi(self.arg_string(n)) & 0xFFFFFFFF

    def arg_int(self, n: int) -> int:
        """The n-th argument as an integer, 0 if absent or not a number."""
        return _atoi(self.arg_string(n))