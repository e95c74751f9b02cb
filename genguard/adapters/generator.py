"""
Generator locator — find the generator program, its root and version.

Resolution order for the program:
    settings.tool_path  >  first PATH entry holding ``settings.tool``

The installation root is ``<bin dir>/../lib``; the version is read
from ``<root>/orogen/version.rb``. Everything is resolved lazily,
once, and cached for the lifetime of the locator (one build run).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from genguard.core.engine.version import read_version_file
from genguard.core.errors import ToolNotFound, VersionUnresolved
from genguard.core.models.generation import GenerationSettings

logger = logging.getLogger(__name__)

_UNSET = object()


class GeneratorLocator:
    """Lazily resolve the generator for one build run."""

    def __init__(self, settings: GenerationSettings, search_path: str | None = None):
        self._settings = settings
        self._search_path = search_path
        self._tool_path: object = _UNSET
        self._version: object = _UNSET

    @property
    def settings(self) -> GenerationSettings:
        return self._settings

    def tool_path(self) -> Path | None:
        """Path to the generator program, or None if it cannot be found."""
        if self._tool_path is _UNSET:
            self._tool_path = self._find_tool()
        return self._tool_path  # type: ignore[return-value]

    def require_tool(self) -> Path:
        """Like tool_path(), but a missing generator is an error.

        Raises:
            ToolNotFound: If the generator is not installed.
        """
        path = self.tool_path()
        if path is None:
            raise ToolNotFound(
                f"cannot find the {self._settings.tool} generator",
                tool=self._settings.tool,
                tool_path=self._settings.tool_path,
            )
        return path

    def root(self) -> Path | None:
        """Installation root of the generator (``<bin>/../lib``)."""
        path = self.tool_path()
        if path is None:
            return None
        return (path.parent.parent / "lib").resolve()

    def version(self) -> str | None:
        """Installed generator version, or None if unresolved (never raises)."""
        if self._version is _UNSET:
            self._version = self._read_version()
        return self._version  # type: ignore[return-value]

    def _find_tool(self) -> Path | None:
        if self._settings.tool_path:
            explicit = Path(self._settings.tool_path)
            if explicit.is_file():
                return explicit.resolve()
            logger.warning("Configured generator %s does not exist", explicit)
            return None

        search_path = self._search_path
        if search_path is None:
            search_path = os.environ.get("PATH", "")
        for entry in search_path.split(os.pathsep):
            if not entry:
                continue
            candidate = Path(entry) / self._settings.tool
            if candidate.is_file():
                logger.debug("Found generator at %s", candidate)
                return candidate
        logger.debug("Generator %s not found on PATH", self._settings.tool)
        return None

    def _read_version(self) -> str | None:
        root = self.root()
        if root is None:
            return None
        try:
            version = read_version_file(root)
        except VersionUnresolved as e:
            logger.debug("Generator version unresolved, gated flags disabled: %s", e)
            return None
        logger.info("Generator version %s (%s)", version, root)
        return version
