"""CRC File Transfer Protocol (crcftp)

Stop-and-wait file transfer over UDP:
- fixed 4096-byte frames with a CRC-32C trailer
- bounded retransmission per frame, receiver-paced rate hints
- NAME/SIZE/HASH/START handshake, DATA stream, STOP
- whole-file MD5 checked by the receiver
"""

from .errors import (
    ChecksumError,
    EncodingError,
    ExchangeFailure,
    TransferAborted,
    TransferCancelled,
    TransferFatal,
)
from .sender import Sender, TransferState
from .session import CancelToken
from .source import FileSource

__all__ = [
    "CancelToken",
    "ChecksumError",
    "EncodingError",
    "ExchangeFailure",
    "FileSource",
    "Sender",
    "TransferAborted",
    "TransferCancelled",
    "TransferFatal",
    "TransferState",
]
