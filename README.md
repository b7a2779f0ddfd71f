# dmrgw

Building blocks for a DMR gateway that sits between an MMDVM repeater host
and one or more DMR masters speaking the Homebrew protocol.

## What is inside

Forward error correction used in DMR bursts:

- `dmrgw.golay2087` – Golay (20,8,7) `encode`, `decode` and `syndrome`, used
  for the slot type field. Its lookup tables are in `dmrgw.golay_tables`
  (`checksum_2087`, `error_pattern_1987`).
- `dmrgw.qr1676` – quadratic residue (16,7,6) `encode`, `decode` and
  `syndrome`, used by the EMB field.
- `dmrgw.rs129` – Reed-Solomon (12,9) over GF(256): `gmult`, `encode`
  (returns the three parity bytes, lowest degree first) and `check` (tests a
  12-byte word).
- `dmrgw.slot_type` – `SlotType`, a dataclass holding `color_code` and
  `data_type`, with `decode(frame)` and `encode_into(frame)` working on a
  DMR frame of at least 21 bytes.

Networking:

- `dmrgw.frame` – `DMRFrame` (slot, source and destination ids, `FLCO`, data
  type, voice sequence number `n`, sequence number, stream id, BER, RSSI and
  the 33 data bytes), and `encode_homebrew` / `decode_homebrew` for the
  55-byte `DMRD` packet. `decode_homebrew` raises `ValueError` for anything
  that is not such a packet.
- `dmrgw.dmr_network` – `DMRNetwork`, the UDP client side of the Homebrew
  login sequence: login, authorisation with `authorisation_digest` (SHA-256
  of the master's salt and the password), configuration, optional options
  string, then pings. `NetworkStatus` tells where it is; `read()` returns the
  next `DMRFrame` or `None`, `write(frame)` sends one once logged in, and
  `wants_beacon()` reports a beacon request from the master.
- `dmrgw.mmdvm_network` – `MMDVMNetwork`, the UDP link to the local MMDVM
  host. Besides frames it keeps the host's configuration block
  (`get_short_config()`), its repeater `id`, and the last radio position and
  talker alias packets (`read_radio_position()`, `read_talker_alias()`).

Routing and control:

- `dmrgw.rules` – `PassAllPC` and `PassAllTG`, which pass every private or
  every group call on one slot, returning a `ProcessResult`.
- `dmrgw.reflectors` – `Reflectors`, a list of `Reflector` entries read from
  an `id;address;startup` hosts file (lines starting with `#` are skipped)
  and reloaded every `reload_time` minutes from `clock(ms)`.
- `dmrgw.remote_control` – `RemoteControl`, which parses `enable net1`…`net5`,
  `enable xlx`, the matching `disable` commands, `status` and `hosts` into a
  `RemoteCommand`, and publishes `OK`, `KO` or the host's report to the
  `response` topic of the MQTT object it is given.
- `dmrgw.mqtt_connection` – `MQTTConnection` and `MQTTQoS`, a small wrapper
  around paho-mqtt; topics without a `/` are prefixed with the gateway name.
- `dmrgw.log` – levelled logging (`LogLevel`) to standard output and, after
  `set_mqtt(connection)`, to the `log` and `json` topics. A `FATAL` line
  raises `SystemExit(1)`.

## Example

```python
from dmrgw import rs129
from dmrgw.frame import DMRFrame, FLCO, decode_homebrew, encode_homebrew
from dmrgw.rules import PassAllTG, ProcessResult

parity = rs129.encode(bytes(9))
assert rs129.check(bytes(9) + parity[::-1])

frame = DMRFrame(slot_no=2, src_id=1234567, dst_id=91, flco=FLCO.GROUP)
packet = encode_homebrew(frame, 123456789)
assert decode_homebrew(packet).dst_id == 91

assert PassAllTG("net1", 2).process(frame, False) is ProcessResult.MATCHED
```

The network classes, the reflector list and the MQTT-driven parts are driven
by periodic `clock(ms)` calls: a main loop reads, routes and writes frames,
then clocks each component with the time that has passed.

## What it does not do

There is no gateway program and no command to run: nothing reads a
configuration file or wires an `MMDVMNetwork` to several `DMRNetwork`
connections. Routing is limited to the pass-all rules; there are no rules
that rewrite talk groups or ids, no full link control, embedded data or BPTC
(and no Hamming) coding of bursts, no voice announcements and no GPS
reporting.