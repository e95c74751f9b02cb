"""
Generation outcomes — what happened to one node during a build run.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

OutcomeStatus = Literal["generated", "up_to_date", "skipped", "would_generate", "failed", "blocked"]


class GenerationOutcome(BaseModel):
    """Result of ensuring one node's generated code is current."""

    node: str
    status: OutcomeStatus
    reason: str = ""
    spec_file: str | None = None
    arguments: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status not in ("failed", "blocked")
