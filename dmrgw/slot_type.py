"""The DMR slot type field: colour code and data type, Golay protected."""

from dataclasses import dataclass

from dmrgw import golay2087

_MIN_FRAME_LENGTH = 21


def _check_frame(data) -> None:
    if len(data) < _MIN_FRAME_LENGTH:
        raise ValueError(
            f"DMR frame too short for a slot type: {len(data)} bytes, need {_MIN_FRAME_LENGTH}"
        )


@dataclass
class SlotType:
    """Colour code and data type carried in the slot type field of a DMR burst."""

    color_code: int = 0
    data_type: int = 0

    def decode(self, data) -> None:
        """Read and error-correct the slot type from a DMR frame."""
        _check_frame(data)

        word = bytes((
            ((data[12] << 2) & 0xFC) | ((data[13] >> 6) & 0x03),
            ((data[13] << 2) & 0xC0) | ((data[19] << 2) & 0x3C) | ((data[20] >> 6) & 0x03),
            (data[20] << 2) & 0xF0,
        ))

        code = golay2087.decode(word)
        self.color_code = (code >> 4) & 0x0F
        self.data_type = code & 0x0F

    def encode_into(self, data: bytearray) -> None:
        """Write the encoded slot type into a DMR frame, leaving its other bits alone."""
        _check_frame(data)

        value = ((self.color_code << 4) & 0xF0) | (self.data_type & 0x0F)
        e0, e1, e2 = golay2087.encode(bytes([value]))

        data[12] = (data[12] & 0xC0) | ((e0 >> 2) & 0x3F)
        data[13] = (data[13] & 0x0F) | ((e0 << 6) & 0xC0) | ((e1 >> 2) & 0x30)
        data[19] = (data[19] & 0xF0) | ((e1 >> 2) & 0x0F)
        data[20] = (data[20] & 0x03) | ((e1 << 6) & 0xC0) | ((e2 >> 2) & 0x3C)