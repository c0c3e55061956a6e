"""Path normalization helpers.

Ledger keys are always forward-slash, project-relative strings with no
leading or trailing separator. Declared sources and destinations may use
either separator style.
"""

import os
from pathlib import Path

SEPARATORS = "/\\" + os.sep


def ends_with_separator(path: str) -> bool:
    """Check whether a declared path names a directory by its trailing separator."""
    return bool(path) and path[-1] in SEPARATORS


def ltrim_separators(path: str) -> str:
    """Strip leading directory separators."""
    return path.lstrip(SEPARATORS)


def rtrim_separators(path: str) -> str:
    """Strip trailing directory separators."""
    return path.rstrip(SEPARATORS)


def trim_separators(path: str) -> str:
    """Strip leading and trailing directory separators."""
    return path.strip(SEPARATORS)


def to_posix(path: str | Path) -> str:
    """Convert any separator style to forward slashes."""
    return str(path).replace(os.sep, "/").replace("\\", "/")


def normalize_key(path: str) -> str:
    """Normalize a ledger key to its canonical forward-slash form."""
    return trim_separators(to_posix(path))


def project_relative(path: Path, project_root: Path) -> str | None:
    """Get the ledger key for an absolute path.

    Args:
        path: Absolute filesystem path
        project_root: Absolute project root

    Returns:
        The forward-slash relative path, "" for the root itself, or None
        if the path lies outside the project root
    """
    try:
        relative = path.relative_to(project_root)
    except ValueError:
        return None
    key = relative.as_posix()
    return "" if key == "." else normalize_key(key)


def from_key(key: str, project_root: Path) -> Path:
    """Resolve a ledger key back to an absolute path under the project root."""
    return project_root / ltrim_separators(key)


def depth(key: str) -> int:
    """Number of path components in a ledger key."""
    return len([part for part in key.split("/") if part])
