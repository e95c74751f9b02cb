"""
Error taxonomy for generation nodes.

Fatal errors carry enough context (node, spec file, command line) to
diagnose a failure without re-running with more verbosity.

    GenGuardError
    ├── SpecificationNotFound   config error, needs a user fix
    ├── ToolNotFound            generator not installed / not on PATH
    ├── GenerationFailed        generator exited non-zero (retried next run)
    ├── VersionUnresolved       never fatal, gated flags are omitted
    └── GraphError              cycle or unknown node in the task graph
"""

from __future__ import annotations

from typing import Any


class GenGuardError(Exception):
    """Base class for every error raised by genguard."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class SpecificationNotFound(GenGuardError):
    """The source directory exists but holds no specification file."""


class ToolNotFound(GenGuardError):
    """The generator program cannot be resolved."""


class VersionUnresolved(GenGuardError):
    """The generator version file is missing or unparseable."""


class GraphError(GenGuardError):
    """The task graph cannot be evaluated (cycle, unknown node)."""


class GenerationFailed(GenGuardError):
    """The generator subprocess exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        output: str = "",
        command: list[str] | None = None,
        **context: Any,
    ):
        super().__init__(message, **context)
        self.returncode = returncode
        self.output = output
        self.command = list(command or [])

    def __str__(self) -> str:
        text = super().__str__()
        if self.command:
            text += f"\n  command: {' '.join(self.command)}"
        if self.output:
            text += f"\n  output:\n{self.output}"
        return text
