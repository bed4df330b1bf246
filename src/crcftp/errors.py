from __future__ import annotations


class ProtocolError(Exception):
    pass


class ChecksumError(ProtocolError, ValueError):
    pass


class EncodingError(ProtocolError, ValueError):
    """A command, chunk or offset does not fit in a frame."""


class ExchangeFailure(ProtocolError):
    def __init__(self, attempts: int):
        super().__init__(f"no acknowledgment after {attempts} attempts")
        self.attempts = attempts


class TransferError(ProtocolError):
    pass


class TransferAborted(TransferError):
    """A control step exhausted its retries. Nothing was committed by the peer."""

    def __init__(self, step: str):
        super().__init__(f"transfer aborted at {step} step")
        self.step = step


class TransferFatal(TransferError):
    """Data streaming failed. The peer may hold partial data; restart from scratch."""

    def __init__(self, offset: int):
        super().__init__(f"data frame at offset {offset} was never acknowledged")
        self.offset = offset


class TransferCancelled(TransferError):
    pass


class DigestMismatchError(ProtocolError):
    def __init__(self, expected: str, actual: str):
        super().__init__(f"digest mismatch: expected {expected} got {actual}")
        self.expected = expected
        self.actual = actual
