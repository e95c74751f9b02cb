"""
Make-backed output check — ask the build directory if generated code is current.

Generated CMake projects expose a ``check-uptodate`` target that fails
when the generated files no longer match what the generator would
produce. No fingerprint or no Makefile means there is nothing to check.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

CHECK_TARGET = "check-uptodate"


class MakeOutputCheck:
    """``OutputCheck`` that runs ``make -C <builddir> check-uptodate``."""

    def __init__(self, builddir: Path, fingerprint: Path, make: str = "make"):
        self._builddir = builddir
        self._fingerprint = fingerprint
        self._make = make

    @property
    def command(self) -> list[str]:
        return [self._make, "-C", str(self._builddir), CHECK_TARGET]

    def is_output_current(self) -> bool:
        if not self._fingerprint.is_file():
            return True
        if not (self._builddir / "Makefile").is_file():
            return True

        try:
            result = subprocess.run(
                self.command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Cannot run %s: %s, assuming outdated", " ".join(self.command), e)
            return False

        logger.debug("%s exited with %d", " ".join(self.command), result.returncode)
        return result.returncode == 0
