"""
Generator version gate.

Some generator flags are only understood by recent releases. The
installed version is read once from the tool's installation root and
compared against the release that introduced each flag.

Two orderings are available:

    semantic  numeric, component-wise ("1.10" > "1.9")
    lexical   plain string comparison, as older build scripts did it
              ("1.10" < "1.9")
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from genguard.core.errors import VersionUnresolved

logger = logging.getLogger(__name__)

# Release that introduced each version-gated flag
PARALLEL_BUILD_SINCE = "1.0"
TYPE_EXPORT_SINCE = "1.1"
TRANSPORTS_SINCE = "1.1"

VERSION_FILE = Path("orogen") / "version.rb"

_VERSION_LINE_RE = re.compile(r'VERSION\s*=\s*"(.+)"\s*$')
_COMPONENT_RE = re.compile(r"^(\d+)")


def parse_version_text(text: str) -> str | None:
    """Extract the version from the first ``VERSION = "x"`` line."""
    for line in text.splitlines():
        match = _VERSION_LINE_RE.search(line)
        if match:
            return match.group(1)
    return None


def read_version_file(tool_root: Path) -> str:
    """Read the generator version below its installation root.

    Raises:
        VersionUnresolved: If the file is missing or holds no version line.
    """
    path = tool_root / VERSION_FILE
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise VersionUnresolved(f"cannot read generator version file: {e}", path=path) from e

    version = parse_version_text(text)
    if version is None:
        raise VersionUnresolved("no VERSION line in generator version file", path=path)
    return version


def _numeric_parts(version: str) -> tuple[int, ...] | None:
    parts = []
    for component in version.lstrip("v").split("."):
        match = _COMPONENT_RE.match(component)
        if not match:
            break
        parts.append(int(match.group(1)))
    return tuple(parts) if parts else None


def version_at_least(version: str, minimum: str, ordering: str = "semantic") -> bool:
    """Whether ``version`` is the same as or newer than ``minimum``."""
    if ordering == "lexical":
        return version >= minimum

    have = _numeric_parts(version)
    need = _numeric_parts(minimum)
    if have is None or need is None:
        logger.debug("Version %r not numeric, comparing as strings", version)
        return version >= minimum

    width = max(len(have), len(need))
    have = have + (0,) * (width - len(have))
    need = need + (0,) * (width - len(need))
    return have >= need
