"""Atomic file writes shared by export and session persistence."""

import os
import tempfile
from pathlib import Path


def _default_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_atomic(target: Path, payload: bytes) -> None:
    """
    Write ``payload`` to ``target`` through a temp file in the same directory.

    The target is either fully replaced or left untouched. The new file gets
    the usual umask-derived mode rather than the temp file's 0600.

    Raises:
        OSError: the write or the final rename failed (the temp file is removed)
    """
    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(temp_path, _default_mode())
        os.replace(temp_path, target)
    except OSError:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()
        raise
