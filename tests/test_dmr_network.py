import socket
import time

import pytest

from dmrgw.dmr_network import DMRNetwork, NetworkStatus, authorisation_digest
from dmrgw.frame import DT_VOICE, FLCO, DMRFrame, decode_homebrew, encode_homebrew

REPEATER_ID = 2345001
ID_BYTES = REPEATER_ID.to_bytes(4, "big")
SALT = b"\x11\x22\x33\x44"
PASSWORD = "password"
CONFIG = b"C" * 60


def _pump(network, predicate, attempts=300):
    for _ in range(attempts):
        network.clock(0)
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def master():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


@pytest.fixture
def make_network(master):
    created = []

    def factory(location=False, options=""):
        password = PASSWORD
        net = DMRNetwork("127.0.0.1", master.getsockname()[1], 0, REPEATER_ID,
                         password=password, name="Test", location=location, debug=False)
        net.set_config(CONFIG)
        net.set_options(options)
        created.append(net)
        return net

    yield factory
    for net in created:
        net.close(False)


def _login(net, master):
    assert net.open()
    net.clock(10_000)
    packet, addr = master.recvfrom(1024)
    assert packet == b"RPTL" + ID_BYTES
    for expected in (NetworkStatus.WAITING_AUTHORISATION, NetworkStatus.WAITING_CONFIG,
                     NetworkStatus.RUNNING):
        master.sendto(b"RPTACK" + SALT, addr)
        assert _pump(net, lambda: net.status is expected)
        if expected is not NetworkStatus.RUNNING:
            master.recvfrom(1024)
    return addr


def test_authorisation_digest_matches_sha256():
    digest = authorisation_digest(b"a", "bc")
    assert digest.hex() == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_authorisation_digest_depends_on_salt():
    assert authorisation_digest(b"\x00\x00\x00\x01", PASSWORD) != authorisation_digest(b"\x00\x00\x00\x02", PASSWORD)
    assert len(authorisation_digest(SALT, PASSWORD)) == 32


@pytest.mark.parametrize("kwargs", [
    {"address": ""},
    {"port": 0},
    {"repeater_id": 1000},
    {"password": ""},
])
def test_constructor_rejects_bad_arguments(kwargs):
    args = {"address": "127.0.0.1", "port": 62031, "local": 0, "repeater_id": REPEATER_ID,
            "password": PASSWORD, "name": "Test", "location": False, "debug": False}
    args.update(kwargs)
    with pytest.raises(ValueError):
        DMRNetwork(**args)


def test_login_sequence(make_network, master):
    net = make_network()
    assert net.open()
    assert net.status is NetworkStatus.WAITING_CONNECT
    net.clock(10_000)
    packet, addr = master.recvfrom(1024)
    assert packet == b"RPTL" + ID_BYTES
    assert net.status is NetworkStatus.WAITING_LOGIN

    master.sendto(b"RPTACK" + SALT, addr)
    assert _pump(net, lambda: net.status is NetworkStatus.WAITING_AUTHORISATION)
    packet, _ = master.recvfrom(1024)
    assert packet == b"RPTK" + ID_BYTES + authorisation_digest(SALT, PASSWORD)

    master.sendto(b"RPTACK", addr)
    assert _pump(net, lambda: net.status is NetworkStatus.WAITING_CONFIG)
    packet, _ = master.recvfrom(1024)
    assert packet[:8] == b"RPTC" + ID_BYTES
    assert len(packet) == len(CONFIG) + 8
    assert packet[38:55] == b"0.00000000.000000"

    master.sendto(b"RPTACK", addr)
    assert _pump(net, lambda: net.is_connected())


def test_options_are_sent_when_set(make_network, master):
    net = make_network(options="opts")
    assert net.open()
    net.clock(10_000)
    _, addr = master.recvfrom(1024)
    for _ in range(2):
        master.sendto(b"RPTACK" + SALT, addr)
        status = net.status
        assert _pump(net, lambda: net.status is not status)
        master.recvfrom(1024)
    master.sendto(b"RPTACK", addr)
    assert _pump(net, lambda: net.status is NetworkStatus.WAITING_OPTIONS)
    packet, _ = master.recvfrom(1024)
    assert packet == b"RPTO" + ID_BYTES + b"opts"
    master.sendto(b"RPTACK", addr)
    assert _pump(net, lambda: net.is_connected())


def test_config_keeps_location_when_enabled(make_network, master):
    net = make_network(location=True)
    assert net.open()
    net.clock(10_000)
    _, addr = master.recvfrom(1024)
    master.sendto(b"RPTACK" + SALT, addr)
    assert _pump(net, lambda: net.status is NetworkStatus.WAITING_AUTHORISATION)
    master.recvfrom(1024)
    master.sendto(b"RPTACK", addr)
    assert _pump(net, lambda: net.status is NetworkStatus.WAITING_CONFIG)
    packet, _ = master.recvfrom(1024)
    assert packet == b"RPTC" + ID_BYTES + CONFIG


def test_not_running_refuses_traffic(make_network):
    net = make_network(location=True)
    assert net.open()
    frame = DMRFrame(data=bytes(33))
    assert net.write(frame) is False
    assert net.read() is None
    assert net.write_home_position(1.0, 2.0) is False
    assert net.is_connected() is False


def test_write_frame(make_network, master):
    net = make_network()
    _login(net, master)
    frame = DMRFrame(slot_no=2, src_id=1234, dst_id=91, flco=FLCO.GROUP,
                     data_type=DT_VOICE, n=3, seq_no=5, stream_id=77, data=bytes(range(33)))
    assert net.write(frame)
    packet, _ = master.recvfrom(1024)
    assert packet[11:15] == ID_BYTES
    assert decode_homebrew(packet) == frame


def test_read_frame_when_enabled(make_network, master):
    net = make_network()
    addr = _login(net, master)
    net.enable(True)
    frame = DMRFrame(slot_no=1, src_id=4321, dst_id=9, flco=FLCO.USER_USER,
                     data_type=1, seq_no=2, stream_id=99, data=bytes(range(33)))
    master.sendto(encode_homebrew(frame, 7777), addr)
    received = []
    assert _pump(net, lambda: received.append(net.read()) or received[-1] is not None)
    assert received[-1] == frame


def test_disabled_network_drops_data(make_network, master):
    net = make_network()
    addr = _login(net, master)
    master.sendto(encode_homebrew(DMRFrame(data=bytes(33)), 7777), addr)
    master.sendto(b"RPTSBKN", addr)
    assert _pump(net, net.wants_beacon)
    assert net.read() is None


def test_beacon_request_is_reported_once(make_network, master):
    net = make_network()
    addr = _login(net, master)
    master.sendto(b"RPTSBKN", addr)
    assert _pump(net, net.wants_beacon)
    assert net.wants_beacon() is False


def test_ping_when_retry_expires(make_network, master):
    net = make_network()
    _login(net, master)
    net.clock(10_000)
    packet, _ = master.recvfrom(1024)
    assert packet == b"RPTPING" + ID_BYTES
    assert net.is_connected()


def test_timeout_restarts_connection(make_network, master):
    net = make_network()
    _login(net, master)
    net.clock(60_000)
    assert net.status is NetworkStatus.WAITING_CONNECT


def test_pong_keeps_connection_alive(make_network, master):
    net = make_network()
    addr = _login(net, master)
    net.clock(50_000)
    master.recvfrom(1024)
    master.sendto(b"MSTPONG" + ID_BYTES, addr)
    master.sendto(b"RPTSBKN", addr)
    assert _pump(net, net.wants_beacon)
    net.clock(20_000)
    assert net.is_connected()


def test_nak_while_running_restarts_login(make_network, master):
    net = make_network()
    addr = _login(net, master)
    master.sendto(b"MSTNAK" + ID_BYTES, addr)
    assert _pump(net, lambda: net.status is NetworkStatus.WAITING_LOGIN)


def test_master_close_reconnects(make_network, master):
    net = make_network()
    addr = _login(net, master)
    master.sendto(b"MSTCL" + ID_BYTES, addr)
    assert _pump(net, lambda: net.status is NetworkStatus.WAITING_CONNECT)


def test_home_position(make_network, master):
    net = make_network(location=True)
    _login(net, master)
    assert net.write_home_position(51.5, -0.125)
    packet, _ = master.recvfrom(1024)
    assert packet == b"RPTG" + ID_BYTES + b"+51.5000-000.1250"


def test_home_position_needs_location(make_network, master):
    net = make_network(location=False)
    _login(net, master)
    assert net.write_home_position(51.5, -0.125) is False


def test_talker_alias_replaces_header(make_network, master):
    net = make_network()
    _login(net, master)
    data = b"DMRA" + b"\x00\x00\x00\x01" + b"ALIASDATA"
    assert net.write_talker_alias(data)
    packet, _ = master.recvfrom(1024)
    assert len(packet) == len(data)
    assert packet == (b"DMRA" + ID_BYTES + data[4:])[: len(data)]


def test_radio_position_needs_location(make_network, master):
    net = make_network(location=False)
    _login(net, master)
    assert net.write_radio_position(b"DMRG" + bytes(12)) is False


def test_close_says_goodbye(make_network, master):
    net = make_network()
    _login(net, master)
    net.close(True)
    packet, _ = master.recvfrom(1024)
    assert packet == b"RPTCL" + ID_BYTES