"""
Engine executor — run generation for every configured node.

The executor plays the host scheduler's part for the CLI: it creates
one ``GenerationTask`` per node, lets each wire itself into the task
graph, then asks the graph to bring each node's prepare stamp up to
date, which runs generation where needed.

Flow:
    config → tasks → prepare (graph edges) → mark stale + invoke per node → report → ledger

Nodes are processed dependencies first. A failure does not stop the
run: independent nodes still proceed, nodes downstream of a failed one
are reported as blocked.
"""

from __future__ import annotations

import graphlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from genguard.adapters.base import Runner
from genguard.adapters.generator import GeneratorLocator
from genguard.adapters.shell.command import SubprocessRunner
from genguard.core.engine.generation import GenerationTask
from genguard.core.engine.graph import FileTaskGraph, TaskGraph
from genguard.core.errors import GenGuardError, GraphError
from genguard.core.models.generation import GenerationConfig
from genguard.core.models.outcome import GenerationOutcome
from genguard.core.persistence.ledger import RunLedger, RunRecord

logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    """Result of one build run (or status evaluation)."""

    run_id: str = ""
    operation: str = "generate"
    outcomes: list[GenerationOutcome] = field(default_factory=list)
    duration_ms: int = 0

    def _count(self, *statuses: str) -> int:
        return sum(1 for o in self.outcomes if o.status in statuses)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def generated(self) -> int:
        return self._count("generated", "would_generate")

    @property
    def up_to_date(self) -> int:
        return self._count("up_to_date")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def failed(self) -> int:
        return self._count("failed", "blocked")

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.failed < self.total:
            return "partial"
        return "failed"

    def get(self, node: str) -> GenerationOutcome | None:
        for outcome in self.outcomes:
            if outcome.node == node:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "operation": self.operation,
            "status": self.status,
            "total": self.total,
            "generated": self.generated,
            "up_to_date": self.up_to_date,
            "skipped": self.skipped,
            "failed": self.failed,
            "duration_ms": self.duration_ms,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"gen-{now}-{short}"


def build_tasks(
    config: GenerationConfig,
    graph: TaskGraph | None = None,
    locator: GeneratorLocator | None = None,
    runner: Runner | None = None,
    timeout: float | None = None,
) -> dict[str, GenerationTask]:
    """Create and prepare one task per generation node.

    Collaborators left as None get their default implementation: a
    ``FileTaskGraph``, a PATH-based locator, and a subprocess runner.
    """
    graph = graph if graph is not None else FileTaskGraph()
    locator = locator or GeneratorLocator(config.settings)
    runner = runner or SubprocessRunner()

    tasks: dict[str, GenerationTask] = {}
    for node in config.nodes:
        tasks[node.name] = GenerationTask(
            node,
            config.settings,
            graph,
            locator,
            runner,
            config=config,
            timeout=timeout,
        )

    for task in tasks.values():
        task.prepare()

    # Build and install are outside genguard: a generation node's install
    # marker simply follows its prepare stamp.
    for task in tasks.values():
        graph.depends(task.node.install_marker_path, task.prepare_stamp)

    return tasks


def _upstream_nodes(task: GenerationTask, config: GenerationConfig) -> list[str]:
    names = []
    for dep in task.dependencies:
        provider = config.find_provider(dep)
        if provider is not None and config.get_node(provider.name) is not None:
            names.append(provider.name)
    return names


def order_tasks(
    tasks: dict[str, GenerationTask],
    config: GenerationConfig,
    targets: list[str] | None = None,
) -> list[GenerationTask]:
    """Selected tasks, dependencies first.

    Raises:
        GraphError: On an unknown target or a dependency cycle.
    """
    selected = list(targets) if targets else list(tasks)
    for name in selected:
        if name not in tasks:
            raise GraphError(f"unknown generation node '{name}'", node=name)

    sorter: graphlib.TopologicalSorter[str] = graphlib.TopologicalSorter()
    for name, task in tasks.items():
        sorter.add(name, *_upstream_nodes(task, config))
    try:
        ordered = list(sorter.static_order())
    except graphlib.CycleError as e:
        raise GraphError("dependency cycle between generation nodes", cycle=e.args[1]) from e

    wanted = set(selected)
    return [tasks[name] for name in ordered if name in wanted and name in tasks]


def plan_generation(
    tasks: dict[str, GenerationTask],
    config: GenerationConfig,
    targets: list[str] | None = None,
    operation: str = "status",
) -> GenerationReport:
    """Evaluate every selected node without running anything."""
    start = time.monotonic()
    report = GenerationReport(run_id=generate_run_id(), operation=operation)

    for task in order_tasks(tasks, config, targets):
        try:
            outcome = task.plan()
        except GenGuardError as e:
            outcome = GenerationOutcome(node=task.name, status="failed", reason="error", error=str(e))
        report.outcomes.append(outcome)

    report.duration_ms = int((time.monotonic() - start) * 1000)
    return report


def run_generation(
    tasks: dict[str, GenerationTask],
    config: GenerationConfig,
    targets: list[str] | None = None,
    force: bool = False,
    dry_run: bool = False,
    ledger: RunLedger | None = None,
) -> GenerationReport:
    """Bring the selected nodes' generated code up to date.

    Args:
        tasks: Prepared tasks, from build_tasks().
        config: The configuration the tasks were built from.
        targets: Node names to process (default: all).
        force: Drop the targets' fingerprints first.
        dry_run: Only evaluate staleness (nothing runs, nothing is written).
        ledger: Where to record the run. Dry runs are not recorded.

    Returns:
        GenerationReport with one outcome per selected node.
    """
    if dry_run:
        return plan_generation(tasks, config, targets, operation="dry-run")

    start = time.monotonic()
    report = GenerationReport(run_id=generate_run_id(), operation="generate")
    failed: set[str] = set()

    for task in order_tasks(tasks, config, targets):
        blockers = [n for n in _upstream_nodes(task, config) if n in failed]
        if blockers:
            failed.add(task.name)
            report.outcomes.append(GenerationOutcome(
                node=task.name,
                status="blocked",
                reason="dependency_failed",
                error=f"dependency failed: {', '.join(blockers)}",
            ))
            logger.warning("⊘ %s blocked by %s", task.name, ", ".join(blockers))
            continue

        if force:
            task.prepare_for_forced_build()

        task.last_outcome = None
        try:
            if task.spec_file() is None:
                # Not checked out: there is nothing downstream to bring up to date
                outcome = task.plan()
            else:
                task.mark_if_stale()
                task.graph.invoke(task.prepare_stamp)
                outcome = task.last_outcome or GenerationOutcome(
                    node=task.name, status="up_to_date", reason="prerequisites_unchanged",
                )
        except GenGuardError as e:
            failed.add(task.name)
            outcome = GenerationOutcome(node=task.name, status="failed", reason="error", error=str(e))

        report.outcomes.append(outcome)
        status_marker = "✓" if outcome.ok else "✗"
        logger.info("%s %s → %s (%s)", status_marker, task.name, outcome.status, outcome.reason)

    report.duration_ms = int((time.monotonic() - start) * 1000)
    _record_run(report, ledger)
    return report


def _record_run(report: GenerationReport, ledger: RunLedger | None) -> None:
    if ledger is None:
        return
    ledger.append(RunRecord(
        run_id=report.run_id,
        nodes=[o.node for o in report.outcomes],
        generated=[o.node for o in report.outcomes if o.status == "generated"],
        failed=[o.node for o in report.outcomes if not o.ok],
        status=report.status,
        duration_ms=report.duration_ms,
        errors=[o.error for o in report.outcomes if o.error],
    ))
