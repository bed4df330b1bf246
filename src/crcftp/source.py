from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterator

from .constants import CHUNK_SIZE
from .digest import digest


@dataclass(frozen=True, slots=True)
class FileSource:
    """The one canonical byte sequence of a transfer.

    Both the HASH digest and the data frames are derived from ``content``,
    so what is verified is exactly what is sent.
    """

    name: str
    content: bytes = field(repr=False)

    @classmethod
    def read(cls, path: str, dest_name: str | None = None) -> "FileSource":
        with open(path, "rb") as f:
            content = f.read()
        return cls(name=dest_name or os.path.basename(path), content=content)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def digest(self) -> str:
        return digest(self.content)

    def chunk_at(self, offset: int, chunk_size: int = CHUNK_SIZE) -> bytes:
        return self.content[offset:offset + chunk_size]

    def chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[tuple[int, bytes]]:
        for offset in range(0, self.size, chunk_size):
            yield offset, self.chunk_at(offset, chunk_size)
