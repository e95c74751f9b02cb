"""
genguard — CLI entrypoint.

Usage:
    python -m genguard.main --help
    python -m genguard.main status
    python -m genguard.main generate [NODE...]
    python -m genguard.main config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from genguard import __version__
from genguard.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


def _load(ctx: click.Context):
    """Load the configuration or exit with a readable error."""
    from genguard.core.config.loader import ConfigError, config_root, find_config_file, load_config

    config_path: Path | None = ctx.obj.get("config_path") or find_config_file()
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    assert config_path is not None  # load_config raised otherwise
    return config, config_root(config_path)


def _build(ctx: click.Context, config):
    from genguard.core.engine.executor import build_tasks

    return build_tasks(config, timeout=ctx.obj.get("timeout"))


_STATUS_MARKERS = {
    "generated": ("✓", "green"),
    "would_generate": ("↻", "yellow"),
    "up_to_date": ("✓", "green"),
    "skipped": ("⊘", "white"),
    "failed": ("✗", "red"),
    "blocked": ("⊘", "red"),
}


def _print_report(report, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    for outcome in report.outcomes:
        marker, color = _STATUS_MARKERS.get(outcome.status, ("?", "white"))
        spec = f" [{outcome.spec_file}]" if outcome.spec_file else ""
        click.secho(f"  {marker} {outcome.node}{spec}: {outcome.status} ({outcome.reason})", fg=color)
        if outcome.error:
            click.echo(f"      {outcome.error}")

    click.echo()
    click.echo(
        f"  {report.total} nodes: {report.generated} generated, "
        f"{report.up_to_date} up to date, {report.skipped} skipped, {report.failed} failed"
    )


@click.group()
@click.version_option(version=__version__, prog_name="genguard")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to genguard.yml (default: auto-detect).",
)
@click.option("--timeout", type=float, default=None, help="Generator timeout in seconds.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    timeout: float | None,
) -> None:
    """genguard — regenerate code-generator output only when needed."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["timeout"] = timeout

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.argument("nodes", nargs=-1)
@click.pass_context
def status(ctx: click.Context, as_json: bool, nodes: tuple[str, ...]) -> None:
    """Show which nodes would be regenerated, and why."""
    from genguard.core.engine.executor import plan_generation
    from genguard.core.errors import GraphError

    config, _root = _load(ctx)
    tasks = _build(ctx, config)
    try:
        report = plan_generation(tasks, config, list(nodes) or None)
    except GraphError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if not as_json and not ctx.obj.get("quiet"):
        click.secho(f"\n📋 Generation status ({report.total} nodes)", fg="cyan", bold=True)
    _print_report(report, as_json)
    if not report.all_ok:
        sys.exit(1)


@cli.command()
@click.argument("node")
@click.pass_context
def args(ctx: click.Context, node: str) -> None:
    """Print the generator arguments for NODE, one per line."""
    from genguard.core.errors import GenGuardError

    config, _root = _load(ctx)
    tasks = _build(ctx, config)
    task = tasks.get(node)
    if task is None:
        click.secho(f"❌ Unknown generation node: {node}", fg="red", err=True)
        sys.exit(1)

    try:
        arguments = task.candidate_args()
    except GenGuardError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if arguments is None:
        click.secho(f"⊘ {node}: source directory not present", fg="yellow", err=True)
        sys.exit(1)

    for argument in arguments:
        click.echo(argument)


@cli.command()
@click.argument("nodes", nargs=-1)
@click.option("--force", "-f", is_flag=True, help="Regenerate even if up to date.")
@click.option("--dry-run", is_flag=True, help="Only report what would be regenerated.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def generate(
    ctx: click.Context,
    nodes: tuple[str, ...],
    force: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Regenerate code for NODES (default: all) where needed."""
    from genguard.core.engine.executor import run_generation
    from genguard.core.errors import GraphError
    from genguard.core.persistence.ledger import RunLedger

    config, root = _load(ctx)
    tasks = _build(ctx, config)
    try:
        report = run_generation(
            tasks,
            config,
            targets=list(nodes) or None,
            force=force,
            dry_run=dry_run,
            ledger=RunLedger.for_project(root),
        )
    except GraphError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    _print_report(report, as_json)
    if not report.all_ok:
        sys.exit(1)


@cli.command()
@click.option("-n", "count", type=int, default=10, help="Number of entries to show.")
@click.option("--node", default=None, help="Only runs that included this node.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, node: str | None, as_json: bool) -> None:
    """Show recent generation runs."""
    from genguard.core.persistence.ledger import RunLedger

    _config, root = _load(ctx)
    ledger = RunLedger.for_project(root)
    entries = ledger.recent(count, node=node)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho("No generation runs recorded.", fg="yellow")
        return

    for entry in entries:
        generated = ", ".join(entry.generated) or "-"
        click.echo(f"  {entry.timestamp}  {entry.run_id}  {entry.status:<7}  generated: {generated}")

    if node is not None:
        last = ledger.last_generated(node)
        when = f"{last.timestamp} ({last.run_id})" if last else "never"
        click.echo(f"\n  {node} last generated: {when}")


@cli.group()
def config() -> None:
    """Configuration management."""


@config.command("check")
@click.pass_context
def config_check(ctx: click.Context) -> None:
    """Validate genguard.yml."""
    config_obj, _root = _load(ctx)
    click.secho(
        f"✅ Configuration valid: {len(config_obj.nodes)} nodes, "
        f"{len(config_obj.packages)} packages",
        fg="green",
    )
    for node in config_obj.nodes:
        deps = f" ← {', '.join(node.dependencies)}" if node.dependencies else ""
        click.echo(f"     • {node.name}{deps}  → {node.srcdir}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
