"""Artifact path normalization shared by the artifact stores."""

from pathlib import PurePosixPath, PureWindowsPath

INDEX_FILENAME = "index.json"


def normalize_artifact_path(path: str) -> str:
    """
    Validate a relative artifact path and return its POSIX form.

    Args:
        path: Path relative to the store root

    Returns:
        The normalized path, e.g. ``FEAT-2026-000001/03-tasks/tasks.json``

    Raises:
        ValueError: If the path is empty, absolute, contains ``..`` or
            names a feature's own write log
    """
    if not path or not path.strip():
        raise ValueError("Artifact path must not be empty")

    if PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute():
        raise ValueError(f"Artifact path must be relative: {path}")

    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".")]
    if ".." in parts:
        raise ValueError(f"Artifact path must not contain '..': {path}")
    if not parts:
        raise ValueError(f"Artifact path must name a file: {path}")
    if len(parts) == 2 and parts[1] == INDEX_FILENAME:
        raise ValueError(f"Artifact path is reserved for the write log: {path}")

    return "/".join(parts)


def feature_of(path: str) -> str:
    """First segment of a normalized artifact path."""
    return path.split("/", 1)[0]
