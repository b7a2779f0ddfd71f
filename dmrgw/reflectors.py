"""The list of XLX reflectors, loaded from a hosts file and reloaded periodically."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from dmrgw.log import LogLevel, log

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


@dataclass
class Reflector:
    """One reflector entry: its id, address and startup module number."""

    id: str = "0"
    address: str = ""
    startup: int = 0


class _Timer:
    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        self.elapsed_ms = 0
        self.running = False

    def start(self) -> None:
        self.elapsed_ms = 0
        self.running = True

    def clock(self, ms: int) -> None:
        if self.running:
            self.elapsed_ms += ms

    def expired(self) -> bool:
        return self.running and self.timeout_ms > 0 and self.elapsed_ms >= self.timeout_ms


def _next_token(rest: str, delims: str):
    rest = rest.lstrip(delims)
    if not rest:
        return None, ""
    end = next((i for i, c in enumerate(rest) if c in delims), len(rest))
    return rest[:end], rest[end + 1:]


def _atoi(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _parse_line(line: str) -> Optional[Reflector]:
    ident, rest = _next_token(line, ";\r\n")
    address, rest = _next_token(rest, ";\r\n")
    startup, _ = _next_token(rest, "\r\n")
    if ident is None or address is None or startup is None:
        return None
    return Reflector(ident, address, _atoi(startup) & 0xFFFFFFFF)


class Reflectors:
    """Reflector list read from a hosts file of 'id;address;startup' lines."""

    def __init__(self, hosts_file: Union[str, Path], reload_time: int) -> None:
        self.hosts_file = Path(hosts_file)
        self.reflectors: List[Reflector] = []
        self._timer = _Timer(reload_time * 60 * 1000)
        if reload_time > 0:
            self._timer.start()

    def load(self) -> bool:
        """Reread the hosts file; True if at least one reflector was loaded."""
        self.reflectors = []

        try:
            with self.hosts_file.open("rt", encoding="utf-8", errors="replace") as fp:
                for line in fp:
                    if line.startswith("#"):
                        continue
                    reflector = _parse_line(line)
                    if reflector is not None:
                        self.reflectors.append(reflector)
        except OSError:
            pass

        log(LogLevel.INFO, f"Loaded {len(self.reflectors)} XLX reflectors")

        return bool(self.reflectors)

    def find(self, reflector_id: str) -> Optional[Reflector]:
        """Return the reflector with the given id, or None."""
        for reflector in self.reflectors:
            if reflector.id == reflector_id:
                return reflector

        log(LogLevel.MESSAGE, f"Trying to find non existent XLX reflector with an id of {reflector_id}")
        return None

    def clock(self, ms: int) -> None:
        """Advance the reload timer, reloading the file when it expires."""
        self._timer.clock(ms)
        if self._timer.expired():
            self.load()
            self._timer.start()