"""Shortened Golay (20,8,7) code used to protect the DMR slot type field."""

from dmrgw.golay_tables import checksum_2087, error_pattern_1987

_X18 = 0x00040000
_X11 = 0x00000800
_HIGH_MASK = ~0x7FF
_GENPOL = 0x00000C75


def syndrome(pattern: int) -> int:
    """Return the remainder of a 19-bit pattern divided by the generator polynomial."""
    if not 0 <= pattern < (1 << 19):
        raise ValueError(f"Golay (19,8) pattern out of range: {pattern}")

    aux = _X18
    if pattern >= _X11:
        while pattern & _HIGH_MASK:
            while not aux & pattern:
                aux >>= 1
            pattern ^= (aux // _X11) * _GENPOL
    return pattern


def encode(data) -> bytes:
    """Encode the data byte data[0]; return it followed by its two parity bytes."""
    if len(data) < 1:
        raise ValueError("Golay (20,8) encoding needs at least one byte")
    value = data[0]
    cksum = checksum_2087(value)
    return bytes((value, cksum & 0xFF, cksum >> 8))


def decode(data) -> int:
    """Correct the 19-bit code word held in data[0:3] and return its data byte."""
    if len(data) < 3:
        raise ValueError("Golay (20,8) decoding needs three bytes")
    code = (data[0] << 11) + (data[1] << 3) + (data[2] >> 5)
    code ^= error_pattern_1987(syndrome(code))
    return code >> 11