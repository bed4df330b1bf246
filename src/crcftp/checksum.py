"""CRC-32C (Castagnoli), the per-frame integrity check.

Bit-reflected polynomial 0x82F63B78, initial and final one's complement, same
parameters as iSCSI and SCTP. ``crc32c(b"123456789") == 0xE3069283``.
"""
from __future__ import annotations

import crcmod.predefined

_crc32c = crcmod.predefined.mkCrcFun("crc-32c")


def crc32c(data: bytes, crc: int = 0) -> int:
    """Return the CRC-32C of ``data``, continuing from a previous ``crc``."""
    return _crc32c(bytes(data), crc)
