from __future__ import annotations

import struct
from dataclasses import dataclass

from .checksum import crc32c
from .constants import (
    BODY_SIZE,
    CHECKSUM_LEN,
    CHUNK_SIZE,
    DATA_HEADER_FORMAT,
    DATA_HEADER_LEN,
    DATA_TAG,
    FRAME_SIZE,
    MAX_OFFSET,
)
from .errors import ChecksumError, EncodingError

_CHECKSUM = struct.Struct("!I")


def encode(body: bytes) -> bytes:
    """Pad or truncate ``body`` to the frame body size and append its CRC-32C."""
    body = bytes(body[:BODY_SIZE]).ljust(BODY_SIZE, b"\x00")
    return body + _CHECKSUM.pack(crc32c(body))


def decode_and_verify(raw: bytes) -> bytes:
    if len(raw) != FRAME_SIZE:
        raise ChecksumError(f"datagram is {len(raw)} bytes, expected {FRAME_SIZE}")
    body = bytes(raw[:BODY_SIZE])
    (expected,) = _CHECKSUM.unpack_from(raw, BODY_SIZE)
    actual = crc32c(body)
    if actual != expected:
        raise ChecksumError(f"checksum mismatch: frame carries {expected:#010x}, body is {actual:#010x}")
    return body


@dataclass(frozen=True, slots=True)
class Frame:
    """One fixed-size protocol unit, control or data.

    ``body`` is always exactly BODY_SIZE bytes; the checksum is derived from it
    on serialization, so a Frame cannot carry a stale checksum.
    """

    body: bytes

    def __post_init__(self) -> None:
        if len(self.body) != BODY_SIZE:
            raise EncodingError(f"frame body must be {BODY_SIZE} bytes, got {len(self.body)}")

    @property
    def checksum(self) -> int:
        return crc32c(self.body)

    @property
    def is_data(self) -> bool:
        return self.body[:len(DATA_TAG)] == DATA_TAG

    @property
    def data_offset(self) -> int:
        if not self.is_data:
            raise ValueError("not a data frame")
        _, offset = struct.unpack_from(DATA_HEADER_FORMAT, self.body)
        return offset

    def data_payload(self, length: int) -> bytes:
        """Return the first ``length`` payload bytes; the rest is padding."""
        if not self.is_data:
            raise ValueError("not a data frame")
        if not 0 <= length <= CHUNK_SIZE:
            raise ValueError(f"payload length out of range: {length}")
        return self.body[DATA_HEADER_LEN:DATA_HEADER_LEN + length]

    def command(self) -> tuple[str, str | None]:
        """Split a control frame into ``(verb, value)``; value is None for START/STOP."""
        if self.is_data:
            raise ValueError("data frame carries no command")
        text = self.body.rstrip(b"\x00").decode("utf-8")
        verb, sep, value = text.partition("=")
        return verb, (value if sep else None)

    def to_bytes(self) -> bytes:
        return self.body + _CHECKSUM.pack(self.checksum)

    @staticmethod
    def from_bytes(raw: bytes) -> "Frame":
        return Frame(decode_and_verify(raw))

    @staticmethod
    def control(verb: str, value: str | int | None = None) -> "Frame":
        text = verb if value is None else f"{verb}={value}"
        encoded = text.encode("utf-8")
        if b"\x00" in encoded:
            raise EncodingError(f"command contains a NUL byte: {text!r}")
        if len(encoded) > BODY_SIZE:
            raise EncodingError(f"command is {len(encoded)} bytes, frame body holds {BODY_SIZE}")
        return Frame(encoded.ljust(BODY_SIZE, b"\x00"))

    @staticmethod
    def data(offset: int, chunk: bytes) -> "Frame":
        if len(chunk) > CHUNK_SIZE:
            raise EncodingError(f"chunk is {len(chunk)} bytes, frame holds {CHUNK_SIZE}")
        if not 0 <= offset <= MAX_OFFSET:
            raise EncodingError(f"offset {offset} does not fit in 32 bits")
        header = struct.pack(DATA_HEADER_FORMAT, DATA_TAG, offset)
        return Frame((header + chunk).ljust(BODY_SIZE, b"\x00"))
