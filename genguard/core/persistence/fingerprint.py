"""
Fingerprint persistence — the argument vector of the last generation.

The fingerprint is plain UTF-8 text, one argument per line, no trailing
newline. Writes are atomic (write to a temp file, then rename) so an
interrupted write never leaves a half fingerprint that could compare
equal by accident.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def read_fingerprint(path: Path) -> list[str] | None:
    """Load the recorded argument vector.

    Returns:
        The arguments, or None if the file is missing or unreadable.
        Both cases mean "regenerate".
    """
    if not path.is_file():
        return None

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read fingerprint %s: %s, treating as stale", path, e)
        return None

    return raw.split("\n") if raw else []


def write_fingerprint(arguments: list[str], path: Path) -> None:
    """Record ``arguments`` as the new fingerprint (atomic write).

    Args:
        arguments: The exact vector passed to the generator.
        path: Target fingerprint path. Parent directories are created.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = "\n".join(arguments)

    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".fingerprint_",
        suffix=".tmp",
    )
    os.close(fd)
    tmp = Path(tmp_path)
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)
        logger.debug("Fingerprint saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def remove_fingerprint(path: Path) -> bool:
    """Delete the fingerprint so the next evaluation regenerates.

    Returns:
        True if a fingerprint was removed.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Fingerprint removed: %s", path)
    return True


def fingerprint_mtime(path: Path) -> float | None:
    """Modification time of the fingerprint, or None if absent."""
    try:
        return path.stat().st_mtime
    except OSError:
        return None
