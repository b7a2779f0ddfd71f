"""Client side of the homebrew DMR master protocol over UDP."""

import hashlib
import socket
import struct
from collections import deque
from enum import Enum, auto
from typing import Deque, Optional, Tuple

from dmrgw.frame import DMRFrame, decode_homebrew, encode_homebrew
from dmrgw.log import LogLevel, log, write_json_status

_BUFFER_LENGTH = 500
_RX_CAPACITY = 1000
_NO_LOCATION = b"0.00000000.000000"


class NetworkStatus(Enum):
    """Stages of the login handshake with the master."""

    WAITING_CONNECT = auto()
    WAITING_LOGIN = auto()
    WAITING_AUTHORISATION = auto()
    WAITING_CONFIG = auto()
    WAITING_OPTIONS = auto()
    RUNNING = auto()


class _Timer:
    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        self.elapsed_ms = 0
        self.running = False

    def start(self) -> None:
        self.elapsed_ms = 0
        self.running = True

    def stop(self) -> None:
        self.running = False

    def clock(self, ms: int) -> None:
        if self.running:
            self.elapsed_ms += ms

    def expired(self) -> bool:
        return self.running and self.timeout_ms > 0 and self.elapsed_ms >= self.timeout_ms


def authorisation_digest(salt: bytes, password: str) -> bytes:
    """Return the SHA-256 of the master's salt followed by the password."""
    return hashlib.sha256(bytes(salt) + password.encode("utf-8")).digest()


def _dump(level: LogLevel, title: str, data: bytes) -> None:
    log(level, f"{title}\n{bytes(data).hex(' ').upper()}")


class DMRNetwork:
    """Connection to one DMR master: login handshake, keepalive and data transfer."""

    def __init__(
        self,
        address: str,
        port: int,
        local: int,
        repeater_id: int,
        password: str,
        name: str,
        location: bool,
        debug: bool,
    ) -> None:
        if not address:
            raise ValueError("Master address must not be empty")
        if port <= 0:
            raise ValueError(f"Master port must be positive, got {port}")
        if repeater_id <= 1000:
            raise ValueError(f"Repeater id must be above 1000, got {repeater_id}")
        if not password:
            raise ValueError("Master password must not be empty")

        self.name = name
        self._password = password
        self._location = location
        self._debug = debug
        self._local = local
        self._id = (repeater_id & 0xFFFFFFFF).to_bytes(4, "big")
        self._repeater_id = repeater_id

        self._family, self._addr = self._resolve(address, port)
        self._socket: Optional[socket.socket] = None

        self._enabled = False
        self._status = NetworkStatus.WAITING_CONNECT
        self._retry_timer = _Timer(10_000)
        self._timeout_timer = _Timer(60_000)
        self._salt = bytes(4)
        self._rx: Deque[bytes] = deque()
        self._rx_used = 0
        self._options = ""
        self._config = b""
        self._beacon = False

    @staticmethod
    def _resolve(address: str, port: int) -> Tuple[int, Optional[tuple]]:
        try:
            infos = socket.getaddrinfo(address, port, type=socket.SOCK_DGRAM)
        except (OSError, UnicodeError):
            return socket.AF_INET, None
        if not infos:
            return socket.AF_INET, None
        family, _, _, _, sockaddr = infos[0]
        return family, sockaddr

    @property
    def status(self) -> NetworkStatus:
        return self._status

    def set_options(self, options: str) -> None:
        """Set the options string sent after configuration; empty sends none."""
        self._options = options

    def set_config(self, data: bytes) -> None:
        """Set the configuration block sent to the master."""
        self._config = bytes(data)

    def open(self) -> bool:
        """Open the local socket and start trying to log in."""
        if self._addr is None:
            log(LogLevel.ERROR, f"{self.name}, Could not lookup the address of the master")
            return False

        log(LogLevel.MESSAGE, f"{self.name}, Opening DMR Network")
        write_json_status("Opening DMR Network: " + self.name)

        self._close_socket()
        try:
            sock = socket.socket(self._family, socket.SOCK_DGRAM)
            try:
                bind_host = "::" if self._family == socket.AF_INET6 else ""
                sock.bind((bind_host, self._local))
                sock.setblocking(False)
            except OSError:
                sock.close()
                raise
        except OSError as exc:
            log(LogLevel.ERROR, f"{self.name}, Cannot open the socket: {exc}")
            return False
        self._socket = sock

        self._status = NetworkStatus.WAITING_CONNECT
        self._timeout_timer.stop()
        self._retry_timer.start()
        return True

    def enable(self, enabled: bool) -> None:
        """Allow or block incoming data; disabling drops anything queued."""
        if not enabled and self._enabled:
            self._rx.clear()
            self._rx_used = 0
        self._enabled = enabled

    def read(self) -> Optional[DMRFrame]:
        """Return the next received frame, or None."""
        if self._status is not NetworkStatus.RUNNING or not self._rx:
            return None

        packet = self._rx.popleft()
        self._rx_used -= len(packet) + 1
        try:
            return decode_homebrew(packet)
        except ValueError:
            return None

    def write(self, frame: DMRFrame) -> bool:
        """Send a frame to the master; False unless logged in."""
        if self._status is not NetworkStatus.RUNNING:
            return False
        self._send(encode_homebrew(frame, self._repeater_id))
        return True

    def _write_relayed(self, tag: bytes, data: bytes) -> bool:
        packet = (tag + self._id + bytes(data[4:]))[: len(data)]
        return self._send(packet)

    def write_radio_position(self, data: bytes) -> bool:
        """Forward a radio's DMRG position packet under this repeater's id."""
        if self._status is not NetworkStatus.RUNNING or not self._location:
            return False
        return self._write_relayed(b"DMRG", data)

    def write_talker_alias(self, data: bytes) -> bool:
        """Forward a DMRA talker alias packet under this repeater's id."""
        if self._status is not NetworkStatus.RUNNING:
            return False
        return self._write_relayed(b"DMRA", data)

    def write_home_position(self, latitude: float, longitude: float) -> bool:
        """Send the repeater's position; only when logged in and location is enabled."""
        if self._status is not NetworkStatus.RUNNING or not self._location:
            return False

        lat = struct.unpack("f", struct.pack("f", latitude))[0]
        lon = struct.unpack("f", struct.pack("f", longitude))[0]
        text = f"{lat:+08.4f}{lon:+09.4f}".encode("ascii")
        return self._send((b"RPTG" + self._id + text)[:25])

    def wants_beacon(self) -> bool:
        """Return whether the master asked for a beacon since the last call."""
        beacon = self._beacon
        self._beacon = False
        return beacon

    def is_connected(self) -> bool:
        return self._status is NetworkStatus.RUNNING

    def close(self, say_goodbye: bool) -> None:
        """Close the socket, optionally telling the master first."""
        log(LogLevel.MESSAGE, f"{self.name}, Closing DMR Network")

        if say_goodbye and self._status is NetworkStatus.RUNNING:
            self._send(b"RPTCL" + self._id)

        self._close_socket()
        self._retry_timer.stop()
        self._timeout_timer.stop()

    def _close_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def _reconnect(self) -> None:
        self.close(False)
        self.open()

    def _receive(self) -> Tuple[bytes, Optional[tuple]]:
        if self._socket is None:
            return b"", None
        try:
            return self._socket.recvfrom(_BUFFER_LENGTH)
        except (BlockingIOError, InterruptedError):
            return b"", None

    def _matches(self, address: Optional[tuple]) -> bool:
        return address is not None and self._addr is not None and tuple(address[:2]) == tuple(self._addr[:2])

    def _queue(self, packet: bytes) -> None:
        if self._rx_used + len(packet) + 1 > _RX_CAPACITY:
            log(LogLevel.ERROR, "DMR Network buffer overflow, clearing the buffer")
            return
        self._rx.append(packet)
        self._rx_used += len(packet) + 1

    def _logged_in(self) -> None:
        log(LogLevel.MESSAGE, f"{self.name}, Logged into the master successfully")
        write_json_status("Logged into DMR Network: " + self.name)
        self._status = NetworkStatus.RUNNING

    def _restart_timers(self) -> None:
        self._timeout_timer.start()
        self._retry_timer.start()

    def _handle_ack(self, packet: bytes) -> None:
        status = self._status
        if status is NetworkStatus.WAITING_LOGIN:
            log(LogLevel.DEBUG, f"{self.name}, Sending authorisation")
            self._salt = packet[6:10]
            self._write_authorisation()
            self._status = NetworkStatus.WAITING_AUTHORISATION
        elif status is NetworkStatus.WAITING_AUTHORISATION:
            log(LogLevel.DEBUG, f"{self.name}, Sending configuration")
            self._write_config()
            self._status = NetworkStatus.WAITING_CONFIG
        elif status is NetworkStatus.WAITING_CONFIG:
            if not self._options:
                self._logged_in()
            else:
                log(LogLevel.DEBUG, f"{self.name}, Sending options")
                self._write_options()
                self._status = NetworkStatus.WAITING_OPTIONS
        elif status is NetworkStatus.WAITING_OPTIONS:
            self._logged_in()
        else:
            return
        self._restart_timers()

    def _handle(self, packet: bytes) -> bool:
        """Process one packet from the master; False if clocking must stop here."""
        if packet.startswith(b"DMRD"):
            if self._enabled:
                self._queue(packet)
        elif packet.startswith(b"MSTNAK"):
            write_json_status("Failed login into DMR Network: " + self.name)
            if self._status is NetworkStatus.RUNNING:
                log(LogLevel.WARNING, f"{self.name}, Login to the master has failed, retrying login ...")
                self._status = NetworkStatus.WAITING_LOGIN
                self._restart_timers()
            else:
                log(LogLevel.ERROR, f"{self.name}, Login to the master has failed, retrying network ...")
                self._reconnect()
                return False
        elif packet.startswith(b"RPTACK"):
            self._handle_ack(packet)
        elif packet.startswith(b"MSTCL"):
            log(LogLevel.ERROR, f"{self.name}, Master is closing down")
            write_json_status("Connection closing into DMR Network: " + self.name)
            self._reconnect()
        elif packet.startswith(b"MSTPONG"):
            self._timeout_timer.start()
        elif packet.startswith(b"RPTSBKN"):
            self._beacon = True
        else:
            _dump(LogLevel.MESSAGE, f"{self.name}, Unknown packet from the master", packet)
        return True

    def clock(self, ms: int) -> None:
        """Advance timers by ms and process at most one packet from the master."""
        if self._status is NetworkStatus.WAITING_CONNECT:
            self._retry_timer.clock(ms)
            if self._retry_timer.expired():
                if not self._write_login():
                    return
                self._status = NetworkStatus.WAITING_LOGIN
                self._restart_timers()
            return

        try:
            packet, address = self._receive()
        except OSError:
            log(LogLevel.ERROR, f"{self.name}, Socket has failed, retrying connection to the master")
            self._reconnect()
            return

        if self._debug and packet:
            _dump(LogLevel.DEBUG, "Network Received", packet)

        if packet and self._matches(address):
            if not self._handle(packet):
                return

        self._retry_timer.clock(ms)
        if self._retry_timer.expired():
            status = self._status
            if status is NetworkStatus.WAITING_LOGIN:
                self._write_login()
            elif status is NetworkStatus.WAITING_AUTHORISATION:
                self._write_authorisation()
            elif status is NetworkStatus.WAITING_OPTIONS:
                self._write_options()
            elif status is NetworkStatus.WAITING_CONFIG:
                self._write_config()
            elif status is NetworkStatus.RUNNING:
                self._write_ping()
            self._retry_timer.start()

        self._timeout_timer.clock(ms)
        if self._timeout_timer.expired():
            log(LogLevel.ERROR, f"{self.name}, Connection to the master has timed out, retrying connection")
            write_json_status("Failed connection into DMR Network: " + self.name)
            self._reconnect()

    def _write_login(self) -> bool:
        return self._send(b"RPTL" + self._id)

    def _write_authorisation(self) -> bool:
        return self._send(b"RPTK" + self._id + authorisation_digest(self._salt, self._password))

    def _write_options(self) -> bool:
        return self._send(b"RPTO" + self._id + self._options.encode("utf-8"))

    def _write_config(self) -> bool:
        packet = bytearray(b"RPTC" + self._id + self._config)
        length = len(packet)
        if not self._location:
            end = 38 + len(_NO_LOCATION)
            if len(packet) < end:
                packet.extend(bytes(end - len(packet)))
            packet[38:end] = _NO_LOCATION
        return self._send(bytes(packet[:length]))

    def _write_ping(self) -> bool:
        return self._send(b"RPTPING" + self._id)

    def _send(self, packet: bytes) -> bool:
        if not packet:
            raise ValueError("Cannot send an empty packet")

        if self._debug:
            _dump(LogLevel.DEBUG, "Network Transmitted", packet)

        try:
            if self._socket is None or self._addr is None:
                raise OSError("socket is not open")
            self._socket.sendto(packet, self._addr)
        except OSError:
            log(LogLevel.ERROR,
                f"{self.name}, Socket has failed when writing data to the master, retrying connection")
            self._reconnect()
            return False
        return True