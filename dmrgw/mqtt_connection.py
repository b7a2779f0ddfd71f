"""A small MQTT client wrapper that prefixes bare topics with the gateway name."""

import sys
import time
from enum import IntEnum
from typing import Callable, Optional, Sequence, Tuple, Union

import paho.mqtt.client as mqtt

Subscription = Tuple[str, Callable[[bytes], None]]


class MQTTQoS(IntEnum):
    """MQTT quality of service levels."""

    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


def _rc_value(rc) -> int:
    return int(getattr(rc, "value", rc))


def _connack_text(rc) -> str:
    if isinstance(rc, int):
        return mqtt.connack_string(rc)
    return str(rc)


def _reason_text(rc) -> str:
    if isinstance(rc, int):
        return mqtt.error_string(rc)
    return str(rc)


class MQTTConnection:
    """Connection to an MQTT broker with name-prefixed publishing and subscriptions."""

    def __init__(
        self,
        host: str,
        port: int,
        name: str,
        auth_enabled: bool,
        username: str,
        password: str,
        subs: Sequence[Subscription],
        keepalive: int,
        qos: MQTTQoS = MQTTQoS.EXACTLY_ONCE,
    ) -> None:
        if not host:
            raise ValueError("MQTT host must not be empty")
        if port <= 0:
            raise ValueError(f"MQTT port must be positive, got {port}")
        if not name:
            raise ValueError("MQTT name must not be empty")
        if keepalive < 5:
            raise ValueError(f"MQTT keepalive must be at least 5 seconds, got {keepalive}")

        self.host = host
        self.port = port
        self.name = name
        self.auth_enabled = auth_enabled
        self.username = username
        self._password = password
        self.subs = list(subs)
        self.keepalive = keepalive
        self.qos = MQTTQoS(qos)
        self._client: Optional[mqtt.Client] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def full_topic(self, topic: str) -> str:
        """Return the topic as published: bare names get the gateway name prefixed."""
        if "/" in topic:
            return topic
        return f"{self.name}/{topic}"

    def _new_client(self, client_id: str) -> mqtt.Client:
        api = getattr(mqtt, "CallbackAPIVersion", None)
        if api is not None:
            return mqtt.Client(api.VERSION2, client_id=client_id, clean_session=True, userdata=self)
        return mqtt.Client(client_id=client_id, clean_session=True, userdata=self)

    def open(self) -> bool:
        """Connect to the broker and start the network loop; False on failure."""
        client_id = f"DMRGateway.{int(time.time())}"
        print(f"DMRGateway ({self.name}) connecting to MQTT as {client_id}", flush=True)

        try:
            client = self._new_client(client_id)
        except (MemoryError, ValueError) as exc:
            print(f"MQTT Error newing: {exc}", file=sys.stderr)
            return False

        if self.auth_enabled:
            client.username_pw_set(self.username, self._password)

        client.on_connect = self._on_connect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        try:
            rc = client.connect(self.host, self.port, self.keepalive)
        except (OSError, ValueError) as exc:
            print(f"MQTT Error connecting: {exc}", file=sys.stderr)
            return False
        if rc != mqtt.MQTT_ERR_SUCCESS:
            print(f"MQTT Error connecting: {_reason_text(rc)}", file=sys.stderr)
            return False

        rc = client.loop_start()
        if rc != mqtt.MQTT_ERR_SUCCESS:
            client.disconnect()
            print(f"MQTT Error loop starting: {_reason_text(rc)}", file=sys.stderr)
            return False

        self._client = client
        return True

    def publish(self, topic: str, data: Union[str, bytes, bytearray]) -> bool:
        """Publish text or bytes; False when not connected or the publish fails."""
        if not self._connected or self._client is None:
            return False

        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)

        info = self._client.publish(self.full_topic(topic), payload, qos=int(self.qos), retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            print(f"MQTT Error publishing: {_reason_text(info.rc)}", file=sys.stderr)
            return False

        return True

    def close(self) -> None:
        """Disconnect from the broker and stop the network loop."""
        if self._client is not None:
            self._client.disconnect()
            self._client.loop_stop()
            self._client = None
        self._connected = False

    def _on_connect(self, client, userdata, flags, rc, properties=None) -> None:
        print(f"MQTT: on_connect: {_connack_text(rc)}", flush=True)
        if _rc_value(rc) != 0:
            client.disconnect()
            return

        self._connected = True

        for topic, _ in self.subs:
            full = self.full_topic(topic)
            result = client.subscribe(full, qos=int(self.qos))
            code = result[0] if isinstance(result, tuple) else result
            if code != mqtt.MQTT_ERR_SUCCESS:
                print(f"MQTT: error subscribing to {full} - {_reason_text(code)}", file=sys.stderr)
                client.disconnect()

    def _on_subscribe(self, client, userdata, mid, granted, properties=None) -> None:
        for i, qos in enumerate(granted):
            print(f"MQTT: on_subscribe: {i}:{_rc_value(qos)}", flush=True)

    def _on_message(self, client, userdata, message) -> None:
        for topic, callback in self.subs:
            if f"{self.name}/{topic}" == message.topic:
                callback(bytes(message.payload))
                break

    def _on_disconnect(self, client, userdata, *args) -> None:
        rc = args[1] if len(args) >= 2 else (args[0] if args else 0)
        print(f"MQTT: on_disconnect: {_reason_text(rc)}", flush=True)
        self._connected = False