from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from dmrgw.mqtt_connection import MQTTConnection, MQTTQoS

PASSWORD = "password"


def make_connection(subs=(), auth=False, qos=MQTTQoS.EXACTLY_ONCE):
    return MQTTConnection("broker.example.com", 1883, "gw", auth, "user", PASSWORD, subs, 60, qos)


def opened(conn):
    client_cls = patch("paho.mqtt.client.Client")
    mock_cls = client_cls.start()
    client = mock_cls.return_value
    client.connect.return_value = 0
    client.loop_start.return_value = 0
    client.subscribe.return_value = (0, 1)
    client.publish.return_value = SimpleNamespace(rc=0)
    ok = conn.open()
    client_cls.stop()
    return ok, client


def test_full_topic_prefixes_bare_names():
    conn = make_connection()
    assert conn.full_topic("log") == "gw/log"
    assert conn.full_topic("other/topic") == "other/topic"


def test_publish_before_open_fails():
    conn = make_connection()
    assert conn.publish("log", "hello") is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"host": ""},
        {"port": 0},
        {"name": ""},
        {"keepalive": 4},
    ],
)
def test_invalid_arguments_raise(kwargs):
    args = {
        "host": "broker.example.com",
        "port": 1883,
        "name": "gw",
        "auth_enabled": False,
        "username": "user",
        "password": PASSWORD,
        "subs": [],
        "keepalive": 60,
    }
    args.update(kwargs)
    with pytest.raises(ValueError):
        MQTTConnection(**args)


def test_open_connects_and_starts_loop():
    conn = make_connection(auth=True)
    ok, client = opened(conn)
    assert ok is True
    client.connect.assert_called_once_with("broker.example.com", 1883, 60)
    client.loop_start.assert_called_once()
    client.username_pw_set.assert_called_once_with("user", PASSWORD)


def test_open_without_auth_sets_no_credentials():
    conn = make_connection(auth=False)
    ok, client = opened(conn)
    assert ok is True
    client.username_pw_set.assert_not_called()


def test_open_fails_when_connect_raises():
    conn = make_connection()
    with patch("paho.mqtt.client.Client") as mock_cls:
        mock_cls.return_value.connect.side_effect = OSError("refused")
        assert conn.open() is False


def test_on_connect_subscribes_with_prefix():
    subs = [("command", lambda payload: None), ("other/topic", lambda payload: None)]
    conn = make_connection(subs=subs)
    ok, client = opened(conn)
    assert ok
    client.on_connect(client, None, {}, 0)
    topics = [c.args[0] for c in client.subscribe.call_args_list]
    assert topics == ["gw/command", "other/topic"]
    assert all(c.kwargs["qos"] == 2 for c in client.subscribe.call_args_list)
    assert conn.connected is True


def test_on_connect_failure_disconnects():
    conn = make_connection()
    ok, client = opened(conn)
    client.on_connect(client, None, {}, 5)
    client.disconnect.assert_called_once()
    assert conn.publish("log", "x") is False


def test_publish_after_connect_sends_payload():
    conn = make_connection(qos=MQTTQoS.AT_LEAST_ONCE)
    ok, client = opened(conn)
    client.on_connect(client, None, {}, 0)
    assert conn.publish("log", "hi") is True
    client.publish.assert_called_with("gw/log", b"hi", qos=1, retain=False)


def test_publish_reports_failure():
    conn = make_connection()
    ok, client = opened(conn)
    client.on_connect(client, None, {}, 0)
    client.publish.return_value = SimpleNamespace(rc=4)
    assert conn.publish("json", b"{}") is False


def test_disconnect_stops_publishing():
    conn = make_connection()
    ok, client = opened(conn)
    client.on_connect(client, None, {}, 0)
    client.on_disconnect(client, None, 0)
    assert conn.connected is False
    assert conn.publish("log", "x") is False


def test_on_message_dispatches_to_matching_subscription():
    first = MagicMock()
    second = MagicMock()
    conn = make_connection(subs=[("command", first), ("other", second)])
    ok, client = opened(conn)
    client.on_message(client, None, SimpleNamespace(topic="gw/other", payload=b"status"))
    second.assert_called_once_with(b"status")
    first.assert_not_called()


def test_close_disconnects_client():
    conn = make_connection()
    ok, client = opened(conn)
    client.on_connect(client, None, {}, 0)
    conn.close()
    client.disconnect.assert_called_once()
    client.loop_stop.assert_called_once()
    assert conn.publish("log", "x") is False