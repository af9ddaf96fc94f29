from __future__ import annotations

import gzip
import json
from typing import Any


def compress(data: bytes) -> bytes:
    return gzip.compress(data)


def decompress(data: bytes) -> bytes:
    """Gunzip ``data``. Raises ``OSError`` (``gzip.BadGzipFile``) on corrupt input."""
    return gzip.decompress(data)


def compress_json(obj: Any) -> bytes:
    return compress(json.dumps(obj).encode("utf-8"))


def decompress_json(data: bytes) -> Any:
    return json.loads(decompress(data).decode("utf-8"))
