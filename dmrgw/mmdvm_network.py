"""The local link to the repeater host, speaking the homebrew packet format over UDP."""

import socket
from collections import deque
from typing import Deque, Optional, Tuple

from dmrgw.frame import DMRFrame, decode_homebrew, encode_homebrew
from dmrgw.log import LogLevel, log

_BUFFER_LENGTH = 500
_RX_CAPACITY = 1000
# The host never tells us a network id for outgoing data, so it is sent as zero.
_NET_ID = 0


def _resolve(address: str, port: int) -> Tuple[int, Optional[tuple]]:
    try:
        infos = socket.getaddrinfo(address, port, type=socket.SOCK_DGRAM)
    except (OSError, UnicodeError):
        return socket.AF_INET, None
    if not infos:
        return socket.AF_INET, None
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


def _dump(level: LogLevel, title: str, data: bytes) -> None:
    log(level, f"{title}\n{bytes(data).hex(' ').upper()}")


class MMDVMNetwork:
    """UDP link to the repeater host: DMR data, positions, talker aliases and config."""

    def __init__(
        self,
        rpt_address: str,
        rpt_port: int,
        local_address: str,
        local_port: int,
        debug: bool,
    ) -> None:
        if not rpt_address:
            raise ValueError("Repeater address must not be empty")
        if rpt_port <= 0:
            raise ValueError(f"Repeater port must be positive, got {rpt_port}")

        self._family, self._rpt_addr = _resolve(rpt_address, rpt_port)
        self._local_address = local_address
        self._local_port = local_port
        self._debug = debug
        self._socket: Optional[socket.socket] = None

        self._id = 0
        self._rx: Deque[bytes] = deque()
        self._rx_used = 0
        self._config: Optional[bytes] = None
        self._radio_position: Optional[bytes] = None
        self._talker_alias: Optional[bytes] = None

    @property
    def id(self) -> int:
        """The repeater id announced by the host in its configuration packet."""
        return self._id

    @property
    def local_port(self) -> int:
        """The port the local socket is bound to, or the configured one if not open."""
        if self._socket is not None:
            return self._socket.getsockname()[1]
        return self._local_port

    def get_short_config(self) -> bytes:
        """Return the configuration block received from the host, or b"" if none yet."""
        return self._config if self._config is not None else b""

    def open(self) -> bool:
        """Bind the local socket; False if the host address is unknown or binding fails."""
        if self._rpt_addr is None:
            log(LogLevel.ERROR, "Could not lookup the address of the MMDVM Host")
            return False

        log(LogLevel.MESSAGE, "MMDVM Network, Opening")

        self._close_socket()
        try:
            sock = socket.socket(self._family, socket.SOCK_DGRAM)
            try:
                host = self._local_address or ("::" if self._family == socket.AF_INET6 else "")
                sock.bind((host, self._local_port))
                sock.setblocking(False)
            except OSError:
                sock.close()
                raise
        except OSError as exc:
            log(LogLevel.ERROR, f"MMDVM Network, Cannot open the socket: {exc}")
            return False

        self._socket = sock
        return True

    def read(self) -> Optional[DMRFrame]:
        """Return the next frame received from the host, or None."""
        if not self._rx:
            return None

        packet = self._rx.popleft()
        self._rx_used -= len(packet) + 1
        try:
            return decode_homebrew(packet)
        except ValueError:
            return None

    def write(self, frame: DMRFrame) -> bool:
        """Send a frame to the host."""
        packet = encode_homebrew(frame, _NET_ID)

        if self._debug:
            _dump(LogLevel.DEBUG, "Network Transmitted", packet)

        self._send(packet)
        return True

    def read_radio_position(self) -> Optional[bytes]:
        """Return and clear the last DMRG packet from the host, or None."""
        packet, self._radio_position = self._radio_position, None
        return packet

    def read_talker_alias(self) -> Optional[bytes]:
        """Return and clear the last DMRA packet from the host, or None."""
        packet, self._talker_alias = self._talker_alias, None
        return packet

    def write_beacon(self) -> bool:
        """Ask the host to transmit a beacon."""
        return self._send(b"DMRB")

    def clock(self, ms: int) -> None:
        """Process at most one packet from the host."""
        if self._socket is None:
            return
        try:
            packet, address = self._socket.recvfrom(_BUFFER_LENGTH)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as exc:
            log(LogLevel.ERROR, f"MMDVM Network, Error reading from the socket: {exc}")
            return

        if not packet:
            return

        if not self._matches(address):
            log(LogLevel.MESSAGE, "MMDVM packet received from an invalid source")
            return

        if self._debug:
            _dump(LogLevel.DEBUG, "Network Received", packet)

        if packet.startswith(b"DMRD"):
            self._queue(packet)
        elif packet.startswith(b"DMRG"):
            self._radio_position = packet
        elif packet.startswith(b"DMRA"):
            self._talker_alias = packet
        elif packet.startswith(b"DMRC"):
            self._id = int.from_bytes(packet[4:8], "big")
            if self._config is None:
                self._config = packet[8:]
            self._send(b"DMRP")
        else:
            _dump(LogLevel.MESSAGE, "Unknown packet from the MMDVM", packet)

    def close(self) -> None:
        """Close the local socket."""
        log(LogLevel.MESSAGE, "MMDVM Network, Closing")
        self._close_socket()

    def _close_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def _matches(self, address: Optional[tuple]) -> bool:
        return (
            address is not None
            and self._rpt_addr is not None
            and tuple(address[:2]) == tuple(self._rpt_addr[:2])
        )

    def _queue(self, packet: bytes) -> None:
        if self._rx_used + len(packet) + 1 > _RX_CAPACITY:
            log(LogLevel.ERROR, "MMDVM Network buffer overflow, clearing the buffer")
            return
        self._rx.append(packet)
        self._rx_used += len(packet) + 1

    def _send(self, packet: bytes) -> bool:
        try:
            if self._socket is None or self._rpt_addr is None:
                raise OSError("socket is not open")
            self._socket.sendto(packet, self._rpt_addr)
        except OSError as exc:
            log(LogLevel.ERROR, f"MMDVM Network, Error writing to the socket: {exc}")
            return False
        return True