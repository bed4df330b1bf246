from __future__ import annotations

import hashlib


def digest(content: bytes) -> str:
    """Whole-file MD5 as lowercase hex, as carried by the HASH command."""
    return hashlib.md5(content).hexdigest()
