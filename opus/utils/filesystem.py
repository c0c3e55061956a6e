"""Filesystem utilities for Opus."""

import difflib
import hashlib
import os
import re
import shutil
from pathlib import Path

WHITESPACE = re.compile(rb"\s")

# Checksum of empty content; stands in for paths the ledger has never seen
EMPTY_CHECKSUM = hashlib.md5(b"").hexdigest()


def compute_checksum(data: bytes) -> str:
    """Compute the hex md5 checksum of raw content."""
    return hashlib.md5(data).hexdigest()


def compute_file_hash(path: Path, algorithm: str = "md5") -> str:
    """Compute the hash of a file.

    Args:
        path: Path to the file
        algorithm: Hash algorithm (default: md5, the ledger's checksum)

    Returns:
        Hex-encoded hash string
    """
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def compute_content_checksum(path: Path) -> str:
    """Compute a whitespace-insensitive checksum of a file.

    All whitespace bytes are stripped before hashing, so files that differ
    only in indentation, line endings or blank lines hash the same.
    """
    return compute_checksum(WHITESPACE.sub(b"", path.read_bytes()))


def read_bytes_lenient(path: Path) -> bytes:
    """Read a file, treating any read failure as empty content."""
    try:
        return path.read_bytes()
    except OSError:
        return b""


def copy_file(src: Path, dest: Path) -> Path:
    """Copy a file to a destination file path.

    Args:
        src: Source file path
        dest: Destination file path

    Returns:
        Path to the copied file
    """
    shutil.copy2(src, dest)
    return dest


def is_writable(path: Path) -> bool:
    """Check whether the current process may write to a path."""
    return os.access(path, os.W_OK)


def list_entries(path: Path) -> list[Path]:
    """List a directory's immediate children, dotfiles included, in name order."""
    return sorted(path.iterdir(), key=lambda p: p.name)


def unified_diff(current: Path, incoming: Path, label: str) -> str:
    """Render a whitespace and newline insensitive unified diff.

    Lines are matched on their content with all whitespace removed, and
    blank lines are ignored, but the rendered hunks show the lines as written.
    Removed lines come from the current file, added lines from the incoming one.

    Args:
        current: The file currently in the project
        incoming: The file the package would install
        label: Name shown in the diff header

    Returns:
        Unified diff text, or an empty string if the files match
    """
    old_lines = _significant_lines(current)
    new_lines = _significant_lines(incoming)
    matcher = difflib.SequenceMatcher(
        None,
        ["".join(line.split()) for line in old_lines],
        ["".join(line.split()) for line in new_lines],
        autojunk=False,
    )

    output: list[str] = []
    for group in matcher.get_grouped_opcodes(3):
        if not output:
            output.append(f"--- current/{label}")
            output.append(f"+++ incoming/{label}")

        first, last = group[0], group[-1]
        old_range = _format_range(first[1], last[2])
        new_range = _format_range(first[3], last[4])
        output.append(f"@@ -{old_range} +{new_range} @@")

        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                output.extend(f" {line}" for line in old_lines[i1:i2])
                continue
            if tag in ("replace", "delete"):
                output.extend(f"-{line}" for line in old_lines[i1:i2])
            if tag in ("replace", "insert"):
                output.extend(f"+{line}" for line in new_lines[j1:j2])

    return "\n".join(output)


def _significant_lines(path: Path) -> list[str]:
    text = read_bytes_lenient(path).decode("utf-8", errors="replace")
    return [line for line in text.splitlines() if line.strip()]


def _format_range(start: int, stop: int) -> str:
    """Format a hunk range the way `diff -u` does."""
    beginning = start + 1
    length = stop - start
    if length == 1:
        return f"{beginning}"
    if not length:
        beginning -= 1
    return f"{beginning},{length}"
