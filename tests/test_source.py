from __future__ import annotations

import hashlib

from crcftp.digest import digest
from crcftp.source import FileSource


def test_digest_of_hello():
    assert digest(b"hello") == "5d41402abc4b2a76b9719d911017c592"


def test_read_is_binary(tmp_path):
    raw = b"line one\r\nline two\r\n\x00\xff"
    path = tmp_path / "in.txt"
    path.write_bytes(raw)

    source = FileSource.read(str(path))
    assert source.content == raw
    assert source.size == len(raw)
    assert source.digest == hashlib.md5(raw).hexdigest()
    assert source.name == "in.txt"


def test_dest_name_override(tmp_path):
    path = tmp_path / "in.txt"
    path.write_bytes(b"x")
    assert FileSource.read(str(path), dest_name="D:\\out.txt").name == "D:\\out.txt"


def test_chunks_cover_the_digested_bytes():
    content = bytes(range(256)) * 40
    source = FileSource("out", content)
    chunks = list(source.chunks())
    assert [offset for offset, _ in chunks] == [0, 4084, 8168]
    assert b"".join(chunk for _, chunk in chunks) == content
    assert digest(b"".join(chunk for _, chunk in chunks)) == source.digest
