"""
Shared test fixtures and configuration.
"""

import os
import sys
import textwrap
import time
from pathlib import Path

import pytest

from genguard.adapters.generator import GeneratorLocator
from genguard.adapters.mock import MockRunner
from genguard.core.engine.graph import FileTaskGraph
from genguard.core.models.generation import GenerationNode, GenerationSettings

# Far enough in the past that anything written by a test is newer
PAST = float(int(time.time()) - 3600)

GENERATOR_SCRIPT = textwrap.dedent("""\
    import pathlib
    import sys

    out = pathlib.Path(".orogen") / "generated.txt"
    out.parent.mkdir(exist_ok=True)
    out.write_text(" ".join(sys.argv[1:]))
    sys.exit(0)
""")


def set_mtime(path: Path, timestamp: float) -> None:
    """Set both atime and mtime of ``path``."""
    os.utime(path, (timestamp, timestamp))


def age_tree(root: Path, timestamp: float = PAST) -> None:
    """Push every file below ``root`` into the past."""
    for path in root.rglob("*"):
        if path.is_file():
            set_mtime(path, timestamp)


class FakeOutputCheck:
    """OutputCheck with a fixed answer that counts its calls."""

    def __init__(self, current: bool = True):
        self.current = current
        self.calls = 0

    def is_output_current(self) -> bool:
        self.calls += 1
        return self.current


@pytest.fixture
def tool_install(tmp_path: Path) -> Path:
    """A fake generator installation: bin/orogen + lib/orogen/version.rb.

    Returns the path to the program. Its installation tree is aged.
    """
    root = tmp_path / "tool"
    (root / "bin").mkdir(parents=True)
    (root / "lib" / "orogen").mkdir(parents=True)
    program = root / "bin" / "orogen"
    program.write_text(GENERATOR_SCRIPT)
    (root / "lib" / "orogen" / "version.rb").write_text(
        'module OroGen\n    VERSION = "1.1"\nend\n'
    )
    age_tree(root)
    return program


@pytest.fixture
def settings(tool_install: Path) -> GenerationSettings:
    """Non-forcing settings pointing at the fake generator."""
    return GenerationSettings(
        always_regenerate=False,
        tool_path=str(tool_install),
        interpreter=sys.executable,
    )


@pytest.fixture
def locator(settings: GenerationSettings) -> GeneratorLocator:
    return GeneratorLocator(settings)


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner()


@pytest.fixture
def graph() -> FileTaskGraph:
    return FileTaskGraph()


@pytest.fixture
def make_node(tmp_path: Path):
    """Factory: create a source directory with a spec file and its node."""

    def _make(name: str = "camera", spec: str | None = "camera.orogen", **kwargs) -> GenerationNode:
        srcdir = tmp_path / "src" / name
        srcdir.mkdir(parents=True, exist_ok=True)
        if spec:
            (srcdir / spec).write_text(f'name "{name}"\n')
        age_tree(srcdir)
        return GenerationNode(name=name, srcdir=str(srcdir), **kwargs)

    return _make
