"""Crash-safe file writes.

Every document this package persists (token files, the backup index, the
manifest registry) is written to a temporary file in the target directory
and then moved over the original with ``os.replace``, so a reader never sees
a half-written file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=path.suffix, dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def dump_json(data: Any) -> bytes:
    """Serialise ``data`` the way token files are stored on disk (2-space indent)."""
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def atomic_write_json(path: Path, data: Any) -> None:
    atomic_write_bytes(path, dump_json(data))


def read_json(path: Path, default: Any = None) -> Any:
    """Load a JSON document, returning ``default`` if the file does not exist.

    Malformed JSON raises ``json.JSONDecodeError``; callers decide whether a
    corrupt document is fatal.
    """
    if not path.exists():
        return default
    with open(path, encoding="utf-8") as f:
        return json.load(f)
