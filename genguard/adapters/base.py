"""
Runner base — the contract between generation nodes and subprocesses.

Generation nodes never call ``subprocess`` directly: they hand an
``Invocation`` to a runner and get a ``Receipt`` back. Tests swap in
``MockRunner`` to observe invocations without a generator installed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from genguard.core.models.action import Invocation, Receipt


class Runner(ABC):
    """Abstract base class for invocation runners.

    Runners return a failed Receipt for a non-zero exit instead of
    raising. Interruption (KeyboardInterrupt) is not a failure: it
    propagates after the child process is killed.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'subprocess', 'mock')."""

    @abstractmethod
    def is_available(self, program: str) -> bool:
        """Check if ``program`` can be executed. Should be fast and never raise."""

    @abstractmethod
    def run(self, invocation: Invocation) -> Receipt:
        """Run the invocation and return a receipt."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
