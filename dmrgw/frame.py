"""DMR frames and their 55-byte homebrew network packet form."""

import struct
from dataclasses import dataclass
from enum import IntEnum

DMR_FRAME_LENGTH_BYTES = 33
HOMEBREW_DATA_PACKET_LENGTH = 55

# Pseudo data types for voice bursts; real slot data types fit in four bits.
DT_VOICE_SYNC = 0xF0
DT_VOICE = 0xF1

_SIGNATURE = b"DMRD"


class FLCO(IntEnum):
    """Full link control opcode: group call or private (user to user) call."""

    GROUP = 0
    USER_USER = 3


@dataclass
class DMRFrame:
    """One DMR burst together with the addressing carried alongside it."""

    slot_no: int = 1
    src_id: int = 0
    dst_id: int = 0
    flco: FLCO = FLCO.GROUP
    data_type: int = 0
    n: int = 0
    seq_no: int = 0
    stream_id: int = 0
    ber: int = 0
    rssi: int = 0
    data: bytes = bytes(DMR_FRAME_LENGTH_BYTES)


def encode_homebrew(frame: DMRFrame, repeater_id: int) -> bytes:
    """Build the 55-byte DMRD packet for a frame sent by the given repeater id."""
    if len(frame.data) != DMR_FRAME_LENGTH_BYTES:
        raise ValueError(
            f"DMR frame data must be {DMR_FRAME_LENGTH_BYTES} bytes, got {len(frame.data)}"
        )

    packet = bytearray(HOMEBREW_DATA_PACKET_LENGTH)
    packet[0:4] = _SIGNATURE
    packet[4] = frame.seq_no & 0xFF
    packet[5:8] = (frame.src_id & 0xFFFFFF).to_bytes(3, "big")
    packet[8:11] = (frame.dst_id & 0xFFFFFF).to_bytes(3, "big")
    packet[11:15] = (repeater_id & 0xFFFFFFFF).to_bytes(4, "big")

    flags = 0x00 if frame.slot_no == 1 else 0x80
    flags |= 0x00 if frame.flco == FLCO.GROUP else 0x40
    if frame.data_type == DT_VOICE_SYNC:
        flags |= 0x10
    elif frame.data_type == DT_VOICE:
        flags |= frame.n
    else:
        flags |= 0x20 | frame.data_type
    packet[15] = flags & 0xFF

    packet[16:20] = struct.pack("<I", frame.stream_id & 0xFFFFFFFF)
    packet[20:53] = frame.data
    packet[53] = frame.ber & 0xFF
    packet[54] = frame.rssi & 0xFF
    return bytes(packet)


def decode_homebrew(packet) -> DMRFrame:
    """Parse a DMRD packet into a frame; ValueError if it is not one."""
    if len(packet) < HOMEBREW_DATA_PACKET_LENGTH:
        raise ValueError(
            f"DMRD packet must be {HOMEBREW_DATA_PACKET_LENGTH} bytes, got {len(packet)}"
        )
    if bytes(packet[0:4]) != _SIGNATURE:
        raise ValueError("Not a DMRD packet")

    flags = packet[15]
    frame = DMRFrame(
        slot_no=2 if flags & 0x80 else 1,
        src_id=int.from_bytes(packet[5:8], "big"),
        dst_id=int.from_bytes(packet[8:11], "big"),
        flco=FLCO.USER_USER if flags & 0x40 else FLCO.GROUP,
        seq_no=packet[4],
        stream_id=struct.unpack("<I", bytes(packet[16:20]))[0],
        ber=packet[53],
        rssi=packet[54],
        data=bytes(packet[20:53]),
    )

    if flags & 0x20:
        frame.data_type = flags & 0x0F
        frame.n = 0
    elif flags & 0x10:
        frame.data_type = DT_VOICE_SYNC
        frame.n = 0
    else:
        frame.data_type = DT_VOICE
        frame.n = flags & 0x0F
    return frame