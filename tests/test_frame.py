import pytest

from dmrgw.frame import (
    DMR_FRAME_LENGTH_BYTES,
    DT_VOICE,
    DT_VOICE_SYNC,
    FLCO,
    DMRFrame,
    decode_homebrew,
    encode_homebrew,
)

PAYLOAD = bytes(range(DMR_FRAME_LENGTH_BYTES))


@pytest.mark.parametrize(
    "frame",
    [
        DMRFrame(slot_no=1, src_id=0x010203, dst_id=9, flco=FLCO.GROUP,
                 data_type=DT_VOICE_SYNC, seq_no=7, stream_id=0xDEADBEEF,
                 ber=3, rssi=40, data=PAYLOAD),
        DMRFrame(slot_no=2, src_id=2345678, dst_id=91, flco=FLCO.GROUP,
                 data_type=DT_VOICE, n=4, seq_no=255, stream_id=1, data=PAYLOAD),
        DMRFrame(slot_no=2, src_id=1234, dst_id=5678, flco=FLCO.USER_USER,
                 data_type=1, seq_no=0, stream_id=42, data=PAYLOAD),
        DMRFrame(slot_no=1, src_id=1, dst_id=2, flco=FLCO.USER_USER,
                 data_type=2, data=bytes(DMR_FRAME_LENGTH_BYTES)),
    ],
)
def test_round_trip(frame):
    assert decode_homebrew(encode_homebrew(frame, 2345001)) == frame


def test_wire_layout():
    frame = DMRFrame(slot_no=2, src_id=0x010203, dst_id=0x040506,
                     data_type=DT_VOICE_SYNC, seq_no=9, ber=5, rssi=6, data=PAYLOAD)
    packet = encode_homebrew(frame, 0x01020304)
    assert len(packet) == 55
    assert packet[0:4] == b"DMRD"
    assert packet[4] == 9
    assert packet[5:8] == b"\x01\x02\x03"
    assert packet[8:11] == b"\x04\x05\x06"
    assert packet[11:15] == b"\x01\x02\x03\x04"
    assert packet[15] == 0x90
    assert packet[20:53] == PAYLOAD
    assert packet[53] == 5
    assert packet[54] == 6


def test_voice_n_goes_in_low_bits():
    frame = DMRFrame(data_type=DT_VOICE, n=5, data=PAYLOAD)
    packet = encode_homebrew(frame, 1001)
    assert packet[15] & 0x0F == 5
    assert packet[15] & 0x30 == 0


def test_ids_are_truncated_to_24_bits():
    frame = DMRFrame(src_id=0x1234567, data=PAYLOAD)
    assert decode_homebrew(encode_homebrew(frame, 1001)).src_id == 0x234567


def test_data_frame_has_sync_flag_and_no_n():
    frame = DMRFrame(data_type=3, n=2, data=PAYLOAD)
    decoded = decode_homebrew(encode_homebrew(frame, 1001))
    assert decoded.data_type == 3
    assert decoded.n == 0


def test_decode_rejects_other_packets():
    packet = bytearray(encode_homebrew(DMRFrame(data=PAYLOAD), 1001))
    packet[0:4] = b"DMRA"
    with pytest.raises(ValueError):
        decode_homebrew(bytes(packet))


def test_decode_rejects_short_packet():
    with pytest.raises(ValueError):
        decode_homebrew(b"DMRD" + bytes(10))


def test_encode_rejects_wrong_data_length():
    with pytest.raises(ValueError):
        encode_homebrew(DMRFrame(data=bytes(10)), 1001)