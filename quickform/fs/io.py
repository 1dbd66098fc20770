"""Real-disk I/O used by the virtual filesystem import/export."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_bytes(path: Path, content: bytes, mode: int = 0o644) -> None:
    """Materialize one exported file.

    The bytes go to a sibling temp file that is renamed over ``path``, so a
    reader of the output tree never sees a half-written file. The parent
    directory is created if missing.

    Args:
        path: Real destination of the virtual file
        content: File node content
        mode: Permission bits applied after the rename
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        os.chmod(path, mode)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def read_bytes(path: Path) -> bytes:
    with path.open("rb") as handle:
        return handle.read()
