"""
Generation models — settings, packages, and generation nodes.

Loaded from genguard.yml, these are the declared truth about which
nodes run the code generator and how. ``GenerationSettings`` is built
once per build run and shared read-only by every node.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TRANSPORTS = ["corba", "typelib", "mqueue"]
DEFAULT_OROCOS_TARGET = "gnulinux"
INSTALL_MARKER_NAME = ".install-stamp"
PREPARE_STAMP_NAME = "genguard-prepare-stamp"


class GenerationSettings(BaseModel):
    """Process-wide generation policy.

    Frozen: values are set once when the build run is configured and
    never change while nodes are being evaluated.
    """

    model_config = ConfigDict(frozen=True)

    # ── Policy toggles ───────────────────────────────────────────
    corba: bool | None = None
    extended_states: bool | None = None   # None = let the generator decide
    always_regenerate: bool = True

    # ── Version-gated flag values ────────────────────────────────
    transports: tuple[str, ...] = tuple(DEFAULT_TRANSPORTS)
    type_export_policy: str = "used"
    parallel_build_level: int = 1
    version_ordering: Literal["semantic", "lexical"] = "semantic"

    # ── Raw overrides (applied before per-node overrides) ────────
    options: tuple[str, ...] = ()

    orocos_target: str | None = None

    # ── Tooling ──────────────────────────────────────────────────
    tool: str = "orogen"
    tool_path: str | None = None
    interpreter: str = "ruby"
    make: str = "make"

    # ── On-disk layout ───────────────────────────────────────────
    spec_extension: str = ".orogen"
    metadata_dir: str = ".orogen"
    fingerprint_name: str = "orogen-stamp"

    def resolved_orocos_target(self) -> str:
        """The target to generate for: explicit, then $OROCOS_TARGET, then gnulinux."""
        if self.orocos_target:
            return self.orocos_target
        user_target = os.environ.get("OROCOS_TARGET", "")
        return user_target or DEFAULT_OROCOS_TARGET


class PackageRef(BaseModel):
    """A plain package other nodes can depend on.

    genguard never builds it; it only reads its install marker.
    """

    name: str
    prefix: str = ""
    install_marker: str | None = None
    provides: list[str] = Field(default_factory=list)

    @property
    def install_marker_path(self) -> Path:
        """File whose mtime says when this package last became usable."""
        if self.install_marker:
            return Path(self.install_marker)
        return Path(self.prefix) / INSTALL_MARKER_NAME


class GenerationNode(PackageRef):
    """A package whose sources are produced by the code generator.

    Tri-state toggles (``corba``, ``extended_states``) fall back to the
    global settings when left as None.
    """

    srcdir: str
    builddir: str | None = None
    spec_file: str | None = None

    corba: bool | None = None
    extended_states: bool | None = None
    parallel_build_level: int | None = None
    orocos_target: str | None = None

    options: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)

    @property
    def install_marker_path(self) -> Path:
        """Install marker; defaults into the build directory without a prefix."""
        if self.install_marker or self.prefix:
            return super().install_marker_path
        return self.build_dir / INSTALL_MARKER_NAME

    @property
    def source_dir(self) -> Path:
        return Path(self.srcdir)

    @property
    def build_dir(self) -> Path:
        if self.builddir:
            return Path(self.builddir)
        return self.source_dir / "build"

    @property
    def prepare_stamp(self) -> Path:
        """Stamp of the downstream build step, depends on the fingerprint."""
        return self.build_dir / PREPARE_STAMP_NAME

    def fingerprint_path(self, settings: GenerationSettings) -> Path:
        return self.source_dir / settings.metadata_dir / settings.fingerprint_name

    def effective_corba(self, settings: GenerationSettings) -> bool:
        if self.corba is None:
            return bool(settings.corba)
        return self.corba

    def effective_extended_states(self, settings: GenerationSettings) -> bool | None:
        if self.extended_states is None:
            return settings.extended_states
        return self.extended_states

    def effective_parallel_level(self, settings: GenerationSettings) -> int:
        if self.parallel_build_level is None:
            return settings.parallel_build_level
        return self.parallel_build_level

    def effective_orocos_target(self, settings: GenerationSettings) -> str:
        return self.orocos_target or settings.resolved_orocos_target()


class GenerationConfig(BaseModel):
    """Root configuration — loaded from genguard.yml."""

    version: int = 1
    settings: GenerationSettings = Field(default_factory=GenerationSettings)
    packages: list[PackageRef] = Field(default_factory=list)
    nodes: list[GenerationNode] = Field(default_factory=list)

    def get_node(self, name: str) -> GenerationNode | None:
        """Look up a generation node by name."""
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def get_package(self, name: str) -> PackageRef | None:
        """Look up any package (generation node or plain) by name."""
        node = self.get_node(name)
        if node is not None:
            return node
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        return None

    def find_provider(self, virtual: str) -> PackageRef | None:
        """Return the package that has ``virtual`` as name or in ``provides``."""
        direct = self.get_package(virtual)
        if direct is not None:
            return direct
        for pkg in [*self.nodes, *self.packages]:
            if virtual in pkg.provides:
                return pkg
        return None

    def all_names(self) -> list[str]:
        return [p.name for p in self.nodes] + [p.name for p in self.packages]
