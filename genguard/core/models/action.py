"""
Invocation and Receipt models — the runner contract.

An Invocation describes one generator run. A Receipt records what the
runner observed. Runners return receipts and never raise for a
non-zero exit; the generation task turns a failed receipt into a
``GenerationFailed`` error.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Invocation(BaseModel):
    """A generator run requested by a generation node."""

    id: str                         # "<node>:generate"
    node: str
    command: list[str]              # interpreter, tool, flags..., spec file
    cwd: str
    timeout: float | None = None    # None = wait as long as it takes

    @property
    def command_line(self) -> str:
        return " ".join(self.command)


class Receipt(BaseModel):
    """Result of running an invocation."""

    runner: str
    invocation_id: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    returncode: int | None = None
    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the run succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the run failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        runner: str,
        invocation_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            runner=runner,
            invocation_id=invocation_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        runner: str,
        invocation_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            runner=runner,
            invocation_id=invocation_id,
            status="failed",
            error=error,
            **kwargs,
        )
