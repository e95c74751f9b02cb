"""
Subprocess runner — execute the generator and capture its output.

stdout and stderr are merged so a failure report shows the generator's
messages in the order it printed them.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from genguard.adapters.base import Runner
from genguard.core.models.action import Invocation, Receipt

logger = logging.getLogger(__name__)


class SubprocessRunner(Runner):
    """Run invocations with ``subprocess.run`` (no shell).

    ``subprocess.run`` kills the child if the wait is interrupted, so a
    cancelled build never leaves a generator running behind it.
    """

    @property
    def name(self) -> str:
        return "subprocess"

    def is_available(self, program: str) -> bool:
        return shutil.which(program) is not None or Path(program).is_file()

    def run(self, invocation: Invocation) -> Receipt:
        logger.debug("Executing: %s (cwd=%s)", invocation.command_line, invocation.cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                invocation.command,
                cwd=invocation.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=invocation.timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output.decode(errors="replace") if isinstance(e.output, bytes) else (e.output or "")
            return Receipt.failure(
                runner=self.name,
                invocation_id=invocation.id,
                error=f"Command timed out after {invocation.timeout}s",
                output=output,
                duration_ms=int((time.monotonic() - start) * 1000),
                metadata={"command": invocation.command},
            )
        except OSError as e:
            return Receipt.failure(
                runner=self.name,
                invocation_id=invocation.id,
                error=f"Command execution error: {e}",
                duration_ms=int((time.monotonic() - start) * 1000),
                metadata={"command": invocation.command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout or "").strip()

        if result.returncode == 0:
            return Receipt.success(
                runner=self.name,
                invocation_id=invocation.id,
                output=output,
                returncode=0,
                duration_ms=elapsed_ms,
                metadata={"command": invocation.command},
            )
        return Receipt.failure(
            runner=self.name,
            invocation_id=invocation.id,
            error=f"Command exited with code {result.returncode}",
            output=output,
            returncode=result.returncode,
            duration_ms=elapsed_ms,
            metadata={"command": invocation.command},
        )
