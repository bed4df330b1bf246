from __future__ import annotations

FRAME_SIZE = 4096
CHECKSUM_LEN = 4
BODY_SIZE = FRAME_SIZE - CHECKSUM_LEN

DATA_TAG = b"DATA"
DATA_HEADER_FORMAT = "!4sI"  # tag, offset
DATA_HEADER_LEN = 8
CHUNK_SIZE = BODY_SIZE - DATA_HEADER_LEN  # 4084
MAX_OFFSET = 0xFFFFFFFF

ACK_SIZE = 16
ACK_OK = b"OK"
ACK_RATE = b"OKSS"
ACK_NAK = b"NO"

CMD_NAME = "NAME"
CMD_SIZE = "SIZE"
CMD_HASH = "HASH"
CMD_START = "START"
CMD_STOP = "STOP"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4000
DEFAULT_TIMEOUT_MS = 1000
DEFAULT_MAX_ATTEMPTS = 8
