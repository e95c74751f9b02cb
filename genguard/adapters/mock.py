"""
Mock runner — test double for generator invocations.

Records every invocation it receives and returns success unless told
otherwise. An optional ``on_run`` hook lets a test simulate what the
generator would write to disk.
"""

from __future__ import annotations

from collections.abc import Callable

from genguard.adapters.base import Runner
from genguard.core.models.action import Invocation, Receipt


class MockRunner(Runner):
    """Universal mock runner for testing."""

    def __init__(
        self,
        runner_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] generated",
        on_run: Callable[[Invocation], None] | None = None,
    ):
        self._name = runner_name
        self._available = available
        self._default_output = default_output
        self._on_run = on_run
        self._failures: dict[str, Receipt] = {}
        self._call_log: list[Invocation] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[Invocation]:
        """All invocations this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self, program: str) -> bool:
        return self._available

    def set_failure(
        self,
        node: str,
        error: str = "Mock failure",
        output: str = "",
        returncode: int = 1,
    ) -> None:
        """Make every invocation for ``node`` fail."""
        self._failures[node] = Receipt.failure(
            runner=self._name,
            invocation_id=f"{node}:generate",
            error=error,
            output=output,
            returncode=returncode,
        )

    def clear_failure(self, node: str) -> None:
        self._failures.pop(node, None)

    def run(self, invocation: Invocation) -> Receipt:
        self._call_log.append(invocation)

        if invocation.node in self._failures:
            return self._failures[invocation.node]

        if self._on_run is not None:
            self._on_run(invocation)

        return Receipt.success(
            runner=self._name,
            invocation_id=invocation.id,
            output=self._default_output,
            returncode=0,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()
