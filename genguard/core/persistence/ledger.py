"""
Run ledger — one NDJSON line per ``genguard generate`` run.

Lives at ``.genguard/ledger.ndjson`` beside the configuration and is
only ever appended to. Dry runs and status queries are not recorded,
so every entry describes generator work that really happened (or was
attempted). ``genguard history`` reads it back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

LEDGER_DIR = ".genguard"
LEDGER_FILE = "ledger.ndjson"


class RunRecord(BaseModel):
    """Summary of one generation run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    nodes: list[str] = Field(default_factory=list)
    generated: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    status: str = ""
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)

    def touched(self, node: str) -> bool:
        return node in self.nodes or node in self.generated


class RunLedger:
    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def for_project(cls, root: Path) -> RunLedger:
        return cls(root / LEDGER_DIR / LEDGER_FILE)

    def append(self, record: RunRecord) -> None:
        """Add ``record``. A ledger that cannot be written only costs history."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(record.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Cannot append to ledger %s: %s", self.path, e)
            return
        logger.debug("Recorded run %s (%s)", record.run_id, record.status)

    def records(self) -> Iterator[RunRecord]:
        """Oldest first. Lines that do not parse are reported and skipped."""
        if not self.path.is_file():
            return
        with self.path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    yield RunRecord.model_validate_json(line)
                except ValidationError as e:
                    logger.warning("%s:%d: unreadable ledger line skipped (%s)",
                                   self.path, lineno, e.error_count())

    def recent(self, n: int = 20, node: str | None = None) -> list[RunRecord]:
        """The last ``n`` runs, only those involving ``node`` if given."""
        selected = [r for r in self.records() if node is None or r.touched(node)]
        return selected[-n:] if n > 0 else []

    def last_generated(self, node: str) -> RunRecord | None:
        """The latest run in which the generator succeeded for ``node``."""
        found = None
        for record in self.records():
            if node in record.generated:
                found = record
        return found
