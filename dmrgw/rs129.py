"""Reed-Solomon (12,9) code over GF(256) used to protect DMR link control."""

from typing import Sequence

_NPAR = 3
_POLY = (64, 56, 14, 1)
_FIELD_POLY = 0x11D


def _build_tables():
    exp = [0] * 512
    log = [0] * 256
    value = 1
    for i in range(255):
        exp[i] = value
        log[value] = i
        value <<= 1
        if value & 0x100:
            value ^= _FIELD_POLY
    for i in range(255, 511):
        exp[i] = exp[i - 255]
    return tuple(exp), tuple(log)


_EXP_TABLE, _LOG_TABLE = _build_tables()


def gmult(a: int, b: int) -> int:
    """Multiply two elements of GF(256)."""
    if not (0 <= a <= 0xFF and 0 <= b <= 0xFF):
        raise ValueError(f"GF(256) operands out of range: {a}, {b}")
    if a == 0 or b == 0:
        return 0
    return _EXP_TABLE[_LOG_TABLE[a] + _LOG_TABLE[b]]


def encode(msg: Sequence[int]) -> bytes:
    """Return the three parity bytes of msg, lowest degree first.

    On the wire the parity follows the data in reverse: parity[2], parity[1], parity[0].
    """
    parity = [0] * _NPAR
    for byte in msg:
        dbyte = byte ^ parity[_NPAR - 1]
        for j in range(_NPAR - 1, 0, -1):
            parity[j] = parity[j - 1] ^ gmult(_POLY[j], dbyte)
        parity[0] = gmult(_POLY[0], dbyte)
    return bytes(parity)


def check(data: Sequence[int]) -> bool:
    """Return True if the 12-byte word has parity matching its first nine bytes."""
    if len(data) < 12:
        raise ValueError(f"RS (12,9) check needs 12 bytes, got {len(data)}")
    parity = encode(data[:9])
    return data[9] == parity[2] and data[10] == parity[1] and data[11] == parity[0]