"""
Generation task — the graph node that keeps generated code current.

One ``GenerationTask`` per generation node. ``prepare()`` wires it into
the task graph once:

    prepare stamp ──> fingerprint ──> source tree
                           ├──────> install marker of every dependency
                           └──────> generator installation tree
                                    (or the generator package, if declared)

When the graph finds the fingerprint out of date it calls
``ensure_generated()``, which asks the staleness engine whether the
generator really has to run. If not, the fingerprint is only touched.
If so, the generator runs in the source directory and, on success
only, the argument vector becomes the new fingerprint. A failed run
leaves the previous fingerprint alone, so the next build retries.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from genguard.adapters.base import Runner
from genguard.adapters.generator import GeneratorLocator
from genguard.adapters.make import MakeOutputCheck
from genguard.core.engine.graph import TaskGraph
from genguard.core.engine.options import compile_options
from genguard.core.engine.staleness import OutputCheck, StalenessVerdict, needs_regeneration
from genguard.core.errors import GenerationFailed, SpecificationNotFound
from genguard.core.models.action import Invocation
from genguard.core.models.generation import GenerationConfig, GenerationNode, GenerationSettings
from genguard.core.models.outcome import GenerationOutcome
from genguard.core.persistence.fingerprint import remove_fingerprint, write_fingerprint

logger = logging.getLogger(__name__)

_UNSET = object()


class GenerationTask:
    """Conditional regeneration for one generation node."""

    def __init__(
        self,
        node: GenerationNode,
        settings: GenerationSettings,
        graph: TaskGraph,
        locator: GeneratorLocator,
        runner: Runner,
        config: GenerationConfig | None = None,
        output_check: OutputCheck | None = None,
        timeout: float | None = None,
    ):
        self.node = node
        self.settings = settings
        self.graph = graph
        self.locator = locator
        self.runner = runner
        self._config = config
        self._timeout = timeout
        self._output_check = output_check or MakeOutputCheck(
            node.build_dir, self.fingerprint_path, make=settings.make,
        )
        self._spec_file: object = _UNSET
        self._dependencies: tuple[str, ...] = tuple(node.dependencies)
        self._prepared = False
        self.last_outcome: GenerationOutcome | None = None

    def __repr__(self) -> str:
        return f"<GenerationTask node={self.name!r}>"

    # ── Identity ────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def fingerprint_path(self) -> Path:
        return self.node.fingerprint_path(self.settings)

    @property
    def prepare_stamp(self) -> Path:
        return self.node.prepare_stamp

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Names this node depends on. Fixed once prepare() has run."""
        return self._dependencies

    # ── Specification ───────────────────────────────────────────

    def spec_file(self) -> str | None:
        """The specification file, relative to the source directory.

        Returns:
            The explicit ``spec_file`` if set, else the first file with the
            spec extension in the source directory. None if the source
            directory does not exist yet (not checked out).

        Raises:
            SpecificationNotFound: The directory exists but has no spec file.
        """
        if self._spec_file is _UNSET:
            self._spec_file = self._find_spec_file()
        return self._spec_file  # type: ignore[return-value]

    def _find_spec_file(self) -> str | None:
        if self.node.spec_file:
            return self.node.spec_file

        srcdir = self.node.source_dir
        if not srcdir.is_dir():
            return None

        pattern = f"*{self.settings.spec_extension}"
        matches = sorted(p for p in srcdir.glob(pattern) if p.is_file())
        if not matches:
            raise SpecificationNotFound(
                f"cannot find a {self.settings.spec_extension} specification file",
                node=self.name,
                srcdir=srcdir,
            )
        if len(matches) > 1:
            logger.warning(
                "%s: several specification files, using %s", self.name, matches[0].name,
            )
        return matches[0].name

    def candidate_args(self) -> list[str] | None:
        """Arguments the generator would receive now (None if no source yet)."""
        spec = self.spec_file()
        if spec is None:
            return None
        return compile_options(self.settings, self.node, self.locator.version(), spec)

    # ── Staleness ───────────────────────────────────────────────

    def _tool_timestamp(self) -> float:
        root = self.locator.root()
        if root is None:
            return 0.0
        return self.graph.timestamp(root)

    def evaluate(self, arguments: list[str]) -> StalenessVerdict:
        """Run the staleness engine for ``arguments``."""
        return needs_regeneration(
            self.fingerprint_path,
            arguments,
            self._output_check,
            tool_timestamp=self._tool_timestamp,
            always_regenerate=self.settings.always_regenerate,
        )

    def mark_if_stale(self) -> StalenessVerdict:
        """Mark the fingerprint out of date when it no longer matches the inputs.

        Graph edges only see timestamps. Changed arguments (a config edit)
        or a failing downstream check leave every prerequisite file alone,
        so they are checked here before the graph is invoked. The force
        policy is left to the graph: it applies when a prerequisite moved.
        """
        arguments = self.candidate_args()
        if arguments is None:
            return StalenessVerdict.fresh()
        verdict = needs_regeneration(
            self.fingerprint_path,
            arguments,
            self._output_check,
            tool_timestamp=self._tool_timestamp,
        )
        if verdict:
            logger.debug("%s: fingerprint out of date (%s)", self.name, verdict.reason)
            self.graph.mark_dirty(self.fingerprint_path)
        return verdict

    def plan(self) -> GenerationOutcome:
        """Report what ensure_generated() would do, without side effects."""
        arguments = self.candidate_args()
        if arguments is None:
            return self._outcome("skipped", "source_unavailable")
        verdict = self.evaluate(arguments)
        status = "would_generate" if verdict else "up_to_date"
        return self._outcome(status, verdict.reason, arguments)

    # ── Generation ──────────────────────────────────────────────

    def ensure_generated(self) -> GenerationOutcome:
        """Make sure the generated code matches the current inputs.

        Raises:
            SpecificationNotFound: No spec file in an existing source dir.
            ToolNotFound: Regeneration needed but the generator is missing.
            GenerationFailed: The generator exited non-zero.
        """
        start = time.monotonic()
        arguments = self.candidate_args()
        if arguments is None:
            logger.info("%s: source directory not present, skipping", self.name)
            self.last_outcome = self._outcome("skipped", "source_unavailable")
            return self.last_outcome

        verdict = self.evaluate(arguments)
        if not verdict:
            logger.info("%s: no need to regenerate", self.name)
            self.graph.touch(self.fingerprint_path)
            self.last_outcome = self._outcome("up_to_date", verdict.reason, arguments)
            return self.last_outcome

        self.regenerate(arguments, verdict)
        self.last_outcome = self._outcome(
            "generated",
            verdict.reason,
            arguments,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return self.last_outcome

    def regenerate(self, arguments: list[str], verdict: StalenessVerdict | None = None) -> None:
        """Run the generator with ``arguments`` and record the fingerprint."""
        tool = self.locator.require_tool()
        command = [self.settings.interpreter, str(tool), *arguments]
        invocation = Invocation(
            id=f"{self.name}:generate",
            node=self.name,
            command=command,
            cwd=str(self.node.source_dir),
            timeout=self._timeout,
        )

        reason = verdict.reason if verdict else "requested"
        logger.info("%s: generating (%s)", self.name, reason)
        receipt = self.runner.run(invocation)

        if receipt.failed:
            raise GenerationFailed(
                f"generator failed for {self.name}: {receipt.error}",
                returncode=receipt.returncode,
                output=receipt.output,
                command=command,
                node=self.name,
                spec=self.node.source_dir / arguments[-1],
            )

        write_fingerprint(arguments, self.fingerprint_path)
        logger.info("%s: generated in %dms", self.name, receipt.duration_ms)

    def prepare_for_forced_build(self) -> None:
        """Drop the fingerprint so the next evaluation regenerates."""
        remove_fingerprint(self.fingerprint_path)
        self.graph.mark_dirty(self.fingerprint_path)

    # ── Graph wiring ────────────────────────────────────────────

    def dependency_markers(self) -> list[Path]:
        """Install markers of every resolvable dependency."""
        markers = []
        for name in self._dependencies:
            package = self._config.find_provider(name) if self._config else None
            if package is None:
                logger.warning("%s: unknown dependency %r ignored", self.name, name)
                continue
            markers.append(package.install_marker_path)
        return markers

    def _add_dependency(self, name: str) -> None:
        if name != self.name and name not in self._dependencies:
            self._dependencies = (*self._dependencies, name)

    def prepare(self) -> None:
        """Declare this node's graph edges. Runs once."""
        if self._prepared:
            return

        if self._config is not None:
            target = self.node.effective_orocos_target(self.settings)
            rtt = self._config.find_provider(f"pkgconfig/orocos-rtt-{target}")
            if rtt is not None and rtt.name != self.name:
                logger.debug("%s: found %s which provides the RTT", self.name, rtt.name)
                self._add_dependency(rtt.name)

        tool_package = self._config.get_package(self.settings.tool) if self._config else None
        root = self.locator.root()
        if root is not None:
            tool_tree = self.graph.source_tree(root)
        else:
            tool_tree = None

        if tool_package is not None:
            self._add_dependency(tool_package.name)
        elif tool_tree is not None:
            self.graph.depends(self.fingerprint_path, tool_tree)

        metadata = self.node.source_dir / self.settings.metadata_dir
        source = self.graph.source_tree(
            self.node.source_dir, exclude=[metadata, self.node.build_dir],
        )
        self.graph.depends(self.fingerprint_path, source)
        self.graph.add_paths(self.fingerprint_path, self.dependency_markers())
        self.graph.depends(self.prepare_stamp, self.fingerprint_path)
        self.graph.on_change(self.fingerprint_path, self.ensure_generated)

        self._prepared = True

    # ── Helpers ─────────────────────────────────────────────────

    def _outcome(
        self,
        status: str,
        reason: str,
        arguments: list[str] | None = None,
        **kwargs,
    ) -> GenerationOutcome:
        return GenerationOutcome(
            node=self.name,
            status=status,
            reason=reason,
            spec_file=arguments[-1] if arguments else None,
            arguments=arguments or [],
            **kwargs,
        )
