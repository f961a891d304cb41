"""Export path validation."""

from pathlib import Path, PurePath

from graph_assistant.errors import InvalidPathError

FORBIDDEN_CHARACTERS = "<>|"


def validate_export_path(path: str | Path) -> Path:
    """
    Check an export target before anything is written.

    Rejects parent-directory segments, doubled slashes and ``<``, ``>``,
    ``|``, and requires the target directory to exist.
    """
    raw = str(path)
    if not raw.strip():
        raise InvalidPathError("Export path is empty")
    if ".." in PurePath(raw.replace("\\", "/")).parts:
        raise InvalidPathError(f"Export path may not contain '..': {raw}")
    if "//" in raw or "\\\\" in raw:
        raise InvalidPathError(f"Export path may not contain double slashes: {raw}")
    bad = sorted({c for c in raw if c in FORBIDDEN_CHARACTERS})
    if bad:
        raise InvalidPathError(f"Export path contains invalid characters {''.join(bad)}: {raw}")

    target = Path(raw)
    if target.is_dir():
        raise InvalidPathError(f"Export path is a directory: {raw}")
    directory = target.parent
    if not directory.is_dir():
        raise InvalidPathError(f"Export directory does not exist: {directory}")
    return target
