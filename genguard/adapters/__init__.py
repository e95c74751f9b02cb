"""Adapters — bindings to the generator, make, and subprocesses.

Public re-exports for convenient access.
"""

from genguard.adapters.base import Runner
from genguard.adapters.generator import GeneratorLocator
from genguard.adapters.make import MakeOutputCheck
from genguard.adapters.mock import MockRunner
from genguard.adapters.shell.command import SubprocessRunner

__all__ = [
    "GeneratorLocator",
    "MakeOutputCheck",
    "MockRunner",
    "Runner",
    "SubprocessRunner",
]
