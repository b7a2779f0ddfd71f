import socket
import time

import pytest

from dmrgw.frame import DT_VOICE, FLCO, DMRFrame, decode_homebrew, encode_homebrew
from dmrgw.mmdvm_network import MMDVMNetwork


@pytest.fixture
def link():
    host = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    host.bind(("127.0.0.1", 0))
    host.settimeout(2.0)
    port = host.getsockname()[1]
    net = MMDVMNetwork("127.0.0.1", port, "127.0.0.1", 0, False)
    assert net.open()
    yield host, net
    net.close()
    host.close()


def _net_addr(net):
    return ("127.0.0.1", net.local_port)


def _clock_until(net, condition, limit=2.0):
    deadline = time.monotonic() + limit
    while time.monotonic() < deadline:
        net.clock(10)
        result = condition()
        if result:
            return result
        time.sleep(0.005)
    return condition()


def _sample_frame():
    return DMRFrame(
        slot_no=2,
        src_id=3100001,
        dst_id=91,
        flco=FLCO.GROUP,
        data_type=DT_VOICE,
        n=3,
        seq_no=7,
        stream_id=0x01020304,
        ber=2,
        rssi=60,
        data=bytes(range(33)),
    )


def test_rejects_empty_address():
    with pytest.raises(ValueError):
        MMDVMNetwork("", 62031, "127.0.0.1", 0, False)


def test_rejects_zero_port():
    with pytest.raises(ValueError):
        MMDVMNetwork("127.0.0.1", 0, "127.0.0.1", 0, False)


def test_read_with_nothing_received(link):
    _, net = link
    assert net.read() is None
    assert net.read_radio_position() is None
    assert net.read_talker_alias() is None
    assert net.get_short_config() == b""


def test_write_sends_homebrew_packet(link):
    host, net = link
    frame = _sample_frame()
    assert net.write(frame) is True
    packet, _ = host.recvfrom(500)
    assert len(packet) == 55
    assert packet[11:15] == bytes(4)
    assert decode_homebrew(packet) == frame


def test_received_data_is_read_back(link):
    host, net = link
    frame = _sample_frame()
    host.sendto(encode_homebrew(frame, 0), _net_addr(net))
    result = _clock_until(net, net.read)
    assert result == frame
    assert net.read() is None


def test_config_packet_sets_id_and_is_acknowledged(link):
    host, net = link
    config = b"config-block"
    host.sendto(b"DMRC" + (12345678).to_bytes(4, "big") + config, _net_addr(net))
    _clock_until(net, lambda: net.id == 12345678)
    assert net.id == 12345678
    assert net.get_short_config() == config
    reply, _ = host.recvfrom(500)
    assert reply == b"DMRP"


def test_config_kept_from_first_packet(link):
    host, net = link
    host.sendto(b"DMRC" + (5000).to_bytes(4, "big") + b"first", _net_addr(net))
    _clock_until(net, lambda: net.id == 5000)
    host.recvfrom(500)
    host.sendto(b"DMRC" + (6000).to_bytes(4, "big") + b"second", _net_addr(net))
    _clock_until(net, lambda: net.id == 6000)
    assert net.id == 6000
    assert net.get_short_config() == b"first"


def test_radio_position_read_once(link):
    host, net = link
    packet = b"DMRG" + bytes(range(20))
    host.sendto(packet, _net_addr(net))
    position = _clock_until(net, net.read_radio_position)
    assert position == packet
    assert net.read_radio_position() is None


def test_talker_alias_read_once(link):
    host, net = link
    packet = b"DMRA" + b"alias data"
    host.sendto(packet, _net_addr(net))
    alias = _clock_until(net, net.read_talker_alias)
    assert alias == packet
    assert net.read_talker_alias() is None


def test_beacon_request(link):
    host, net = link
    assert net.write_beacon() is True
    packet, _ = host.recvfrom(500)
    assert packet == b"DMRB"


def test_packets_from_other_sources_ignored(link):
    host, net = link
    stranger = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    stranger.bind(("127.0.0.1", 0))
    try:
        stranger.sendto(b"DMRG" + bytes(10), _net_addr(net))
        time.sleep(0.05)
        host.sendto(b"DMRA" + bytes(10), _net_addr(net))
        alias = _clock_until(net, net.read_talker_alias)
        assert alias == b"DMRA" + bytes(10)
        assert net.read_radio_position() is None
    finally:
        stranger.close()