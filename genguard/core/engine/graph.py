"""
Task graph — the seam between generation nodes and the build scheduler.

Generation nodes only need a handful of primitives from whatever
engine schedules the build:

    file(path)              register a file-backed node
    depends(target, *pre)   prerequisite edges (nodes, paths, trees)
    timestamp(path)         last-known modification time
    on_change(target, fn)   action run when the node is out of date
    touch(path)             mark current without running the action
    invoke(path)            bring a node (and its prerequisites) up to date

``TaskGraph`` is that contract. ``FileTaskGraph`` is a small in-process
implementation with make semantics: a node is out of date when its
file is missing, a prerequisite is newer, or it was marked dirty.
Prerequisites are looked up by path at invoke time, so edges may point
at nodes registered later.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Union

from genguard.core.errors import GraphError

logger = logging.getLogger(__name__)

IGNORED_DIR_NAMES = frozenset({".git", ".svn", ".hg", "__pycache__"})

Action = Callable[[], None]


@dataclass
class SourceTree:
    """A directory whose timestamp is the newest file mtime below it."""

    root: Path
    exclude: frozenset[Path] = frozenset()

    def files(self) -> Iterator[Path]:
        if not self.root.is_dir():
            return
        for dirpath, dirnames, filenames in os.walk(self.root):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in IGNORED_DIR_NAMES and current / d not in self.exclude
            )
            for name in sorted(filenames):
                path = current / name
                if path not in self.exclude:
                    yield path

    def timestamp(self) -> float:
        newest = 0.0
        for path in self.files():
            try:
                newest = max(newest, path.stat().st_mtime)
            except OSError:
                continue  # removed while walking
        return newest


@dataclass
class FileNode:
    """A file-backed node with prerequisites and an optional action."""

    path: Path
    prerequisites: list[Path] = field(default_factory=list)
    action: Action | None = None
    dirty: bool = False

    def exists(self) -> bool:
        return self.path.exists()

    def timestamp(self) -> float:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return 0.0


Prerequisite = Union[FileNode, SourceTree, Path, str]


class TaskGraph(Protocol):
    """What a generation node needs from the build scheduler."""

    def file(self, path: Path | str) -> FileNode: ...

    def has(self, path: Path | str) -> bool: ...

    def source_tree(self, root: Path | str, exclude: Iterable[Path] = ()) -> SourceTree: ...

    def depends(self, target: Path | str, *prerequisites: Prerequisite) -> None: ...

    def add_paths(self, target: Path | str, paths: Iterable[Path | str]) -> None: ...

    def timestamp(self, path: Path | str) -> float: ...

    def on_change(self, target: Path | str, action: Action) -> None: ...

    def mark_dirty(self, path: Path | str) -> None: ...

    def touch(self, path: Path | str) -> None: ...

    def invoke(self, path: Path | str) -> None: ...


class FileTaskGraph:
    """In-process ``TaskGraph`` backed by file modification times."""

    def __init__(self) -> None:
        self._nodes: dict[Path, FileNode] = {}
        self._trees: dict[Path, SourceTree] = {}

    # ── Registration ────────────────────────────────────────────

    def file(self, path: Path | str) -> FileNode:
        """Return the node for ``path``, creating it on first use."""
        key = Path(path)
        node = self._nodes.get(key)
        if node is None:
            node = FileNode(path=key)
            self._nodes[key] = node
        return node

    def has(self, path: Path | str) -> bool:
        key = Path(path)
        return key in self._nodes or key in self._trees

    def source_tree(self, root: Path | str, exclude: Iterable[Path] = ()) -> SourceTree:
        """Register ``root`` as a tree prerequisite."""
        key = Path(root)
        tree = SourceTree(root=key, exclude=frozenset(Path(p) for p in exclude))
        self._trees[key] = tree
        return tree

    def depends(self, target: Path | str, *prerequisites: Prerequisite) -> None:
        """Declare that ``target`` depends on each of ``prerequisites``."""
        node = self.file(target)
        for prereq in prerequisites:
            if isinstance(prereq, FileNode):
                key = prereq.path
            elif isinstance(prereq, SourceTree):
                key = prereq.root
                self._trees.setdefault(key, prereq)
            else:
                key = Path(prereq)
            if key == node.path:
                raise GraphError("node cannot depend on itself", node=key)
            if key not in node.prerequisites:
                node.prerequisites.append(key)

    def add_paths(self, target: Path | str, paths: Iterable[Path | str]) -> None:
        self.depends(target, *paths)

    def on_change(self, target: Path | str, action: Action) -> None:
        """Attach the action run when ``target`` is out of date."""
        self.file(target).action = action

    # ── Queries ─────────────────────────────────────────────────

    def timestamp(self, path: Path | str) -> float:
        """Modification time of a node, tree or plain path (0.0 if absent)."""
        key = Path(path)
        if key in self._trees:
            return self._trees[key].timestamp()
        if key in self._nodes:
            return self._nodes[key].timestamp()
        try:
            return key.stat().st_mtime
        except OSError:
            return 0.0

    def prerequisites(self, path: Path | str) -> list[Path]:
        node = self._nodes.get(Path(path))
        return list(node.prerequisites) if node else []

    def needed(self, path: Path | str) -> bool:
        """Whether the node must run its action."""
        node = self._nodes.get(Path(path))
        if node is None:
            return False
        if node.dirty or not node.exists():
            return True
        own = node.timestamp()
        return any(self.timestamp(p) > own for p in node.prerequisites)

    # ── Mutation ────────────────────────────────────────────────

    def mark_dirty(self, path: Path | str) -> None:
        self.file(path).dirty = True

    def touch(self, path: Path | str) -> None:
        """Mark ``path`` current: bump its mtime and clear the dirty flag."""
        node = self.file(path)
        node.path.parent.mkdir(parents=True, exist_ok=True)
        node.path.touch()
        node.dirty = False

    # ── Evaluation ──────────────────────────────────────────────

    def invoke(self, path: Path | str) -> None:
        """Bring ``path`` up to date, prerequisites first.

        Raises:
            GraphError: On a dependency cycle.
        """
        self._invoke(Path(path), visiting=[], done=set())

    def _invoke(self, key: Path, visiting: list[Path], done: set[Path]) -> None:
        if key in done:
            return
        if key in visiting:
            cycle = " -> ".join(str(p) for p in [*visiting[visiting.index(key):], key])
            raise GraphError("dependency cycle", cycle=cycle)

        node = self._nodes.get(key)
        if node is None:
            done.add(key)
            return

        visiting.append(key)
        for prereq in node.prerequisites:
            self._invoke(prereq, visiting, done)
        visiting.pop()

        if self.needed(key):
            if node.action is not None:
                logger.debug("Running action for %s", key)
                node.action()
                node.dirty = False
            else:
                self.touch(key)
        done.add(key)
