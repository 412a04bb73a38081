"""
savesync CLI Main Entry Point.

Provides the command-line interface for syncing, wrapping a program with
sync-before/sync-after, backups and status reporting.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import click
import humanize
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from savesync import __version__
from savesync.core.config import SaveSyncConfig, load_config
from savesync.core.errors import SyncError
from savesync.core.logging import setup_logging
from savesync.sync.classifier import ConflictChoice, ConflictResolver, Disposition
from savesync.sync.hasher import hash_directory
from savesync.sync.manager import SyncManager, SyncReport, TargetOutcome, TargetStatus
from savesync.sync.resolvers import policy_resolver

console = Console()

RESOLVE_CHOICES = ["ask", "local", "remote", "ignore", "abort"]

DISPOSITION_LABELS = {
    Disposition.NO_SYNC: "[dim]no sync[/dim]",
    Disposition.TAKE_LOCAL: "[green]local -> remote[/green]",
    Disposition.TAKE_REMOTE: "[cyan]remote -> local[/cyan]",
    Disposition.ABORT: "[red]aborted[/red]",
}


def get_manager(ctx: click.Context) -> SyncManager:
    """Get or create the sync manager from context."""
    if "manager" not in ctx.obj:
        ctx.obj["manager"] = SyncManager(ctx.obj["config"])
    return ctx.obj["manager"]


def prompt_conflict(lastsync_time: datetime, choices: Sequence[ConflictChoice]) -> Disposition:
    """Ask the user which side to keep when both changed."""
    if lastsync_time.timestamp() == 0:
        last_synced = "never"
    else:
        ago = humanize.naturaltime(datetime.now().astimezone() - lastsync_time)
        last_synced = f"{lastsync_time.isoformat(timespec='seconds')} ({ago})"

    console.print(
        Panel(
            "Both the remote and local saves have changed since the last sync.\n\n"
            f"[cyan]Last synced:[/cyan] {last_synced}\n\n"
            "Which version should be kept?",
            title="Conflict",
            border_style="yellow",
        )
    )
    labels = [choice.label for choice in choices]
    answer = click.prompt("Choice", type=click.Choice(labels))
    return next(choice.disposition for choice in choices if choice.label == answer)


def resolver_for(ctx: click.Context, policy: str | None) -> ConflictResolver:
    config: SaveSyncConfig = ctx.obj["config"]
    policy = policy or config.sync.conflict_policy
    if policy == "ask":
        return prompt_conflict
    return policy_resolver(policy)


def print_report(report: SyncReport) -> None:
    table = Table(title=f"Sync: {report.target}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Result", DISPOSITION_LABELS[report.disposition])
    table.add_row("Local", report.local.short())
    table.add_row("Last sync", report.lastsync.short())
    table.add_row("Remote", report.remote.short())
    if report.backup:
        table.add_row("Backup", str(report.backup))
    console.print(table)


def print_outcomes(outcomes: list[TargetOutcome], title: str) -> None:
    table = Table(title=title)
    table.add_column("Target", style="cyan")
    table.add_column("Result")
    table.add_column("Detail", style="dim")
    for outcome in outcomes:
        if outcome.skipped:
            table.add_row(outcome.target, "[dim]skipped[/dim]", "sync disabled")
        elif outcome.error is not None:
            table.add_row(outcome.target, "[red]failed[/red]", str(outcome.error))
        elif outcome.report is not None:
            detail = str(outcome.report.backup) if outcome.report.backup else ""
            table.add_row(outcome.target, DISPOSITION_LABELS[outcome.report.disposition], detail)
        else:
            table.add_row(outcome.target, "[green]ok[/green]", str(outcome.backup or ""))
    console.print(table)


def outcome_to_dict(outcome: TargetOutcome) -> dict[str, object]:
    return {
        "target": outcome.target,
        "ok": outcome.ok,
        "skipped": outcome.skipped,
        "error": str(outcome.error) if outcome.error else None,
        "report": outcome.report.to_dict() if outcome.report else None,
        "backup": str(outcome.backup) if outcome.backup else None,
    }


def _require_selection(target: str | None, all_targets: bool) -> None:
    if bool(target) == all_targets:
        console.print("[red]Give exactly one of TARGET or --all.[/red]")
        sys.exit(2)


@click.group()
@click.version_option(version=__version__, prog_name="savesync")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--quiet", "-q", is_flag=True, help="Only log warnings and errors")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    json_output: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """
    savesync - Keep local save data and its remote mirror in agreement.
    """
    ctx.ensure_object(dict)

    if "config" not in ctx.obj:
        ctx.obj["config"] = load_config(config)

    settings: SaveSyncConfig = ctx.obj["config"]
    if verbose:
        settings.logging.level = "DEBUG"
    elif quiet:
        settings.logging.level = "WARNING"
    setup_logging(settings.logging)

    ctx.obj["json_output"] = json_output


@cli.command("sync")
@click.argument("target", required=False)
@click.option("--all", "all_targets", is_flag=True, help="Sync every enabled target")
@click.option(
    "--resolve",
    type=click.Choice(RESOLVE_CHOICES[:-1]),
    help="How to settle conflicts (default from config)",
)
@click.pass_context
def sync_command(
    ctx: click.Context,
    target: str | None,
    all_targets: bool,
    resolve: str | None,
) -> None:
    """Synchronize one target, or all of them."""
    _require_selection(target, all_targets)
    manager = get_manager(ctx)
    resolver = resolver_for(ctx, resolve)
    json_output = ctx.obj.get("json_output", False)

    if target:
        report = manager.sync(target, resolver)
        if json_output:
            click.echo(json.dumps(report.to_dict(), indent=2))
        else:
            print_report(report)
        return

    outcomes = manager.sync_all(resolver)
    if json_output:
        click.echo(json.dumps([outcome_to_dict(o) for o in outcomes], indent=2))
    else:
        print_outcomes(outcomes, "Sync")
    if not all(outcome.ok for outcome in outcomes):
        sys.exit(1)


@cli.command(
    "run",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("target")
@click.argument("command")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "--resolve",
    type=click.Choice(RESOLVE_CHOICES),
    help="How to settle conflicts (default from config)",
)
@click.pass_context
def run_command(
    ctx: click.Context,
    target: str,
    command: str,
    args: tuple[str, ...],
    resolve: str | None,
) -> None:
    """Sync TARGET, run COMMAND with ARGS, then sync again."""
    manager = get_manager(ctx)
    resolver = resolver_for(ctx, resolve)

    result = manager.run(target, command, list(args), resolver)

    if ctx.obj.get("json_output", False):
        click.echo(
            json.dumps(
                {
                    "target": result.target,
                    "command": result.command,
                    "args": result.args,
                    "launched": result.launched,
                    "returncode": result.returncode,
                    "before": result.before.to_dict(),
                    "after": result.after.to_dict() if result.after else None,
                },
                indent=2,
            )
        )
        return

    if not result.launched:
        console.print(f"[yellow]Launch of '{command}' aborted.[/yellow]")
        return
    if result.returncode:
        console.print(f"[yellow]'{command}' exited with status {result.returncode}[/yellow]")
    if result.after is not None:
        print_report(result.after)


@cli.command("backup")
@click.argument("target", required=False)
@click.option("--all", "all_targets", is_flag=True, help="Back up every target")
@click.pass_context
def backup_command(ctx: click.Context, target: str | None, all_targets: bool) -> None:
    """Copy a target's content into its local backup directory."""
    _require_selection(target, all_targets)
    manager = get_manager(ctx)
    json_output = ctx.obj.get("json_output", False)

    if target:
        path = manager.backup(target)
        if json_output:
            click.echo(json.dumps({"target": target, "backup": str(path)}, indent=2))
        else:
            console.print(f"[green]Backed up '{target}' to[/green] {path}")
        return

    outcomes = manager.backup_all()
    if json_output:
        click.echo(json.dumps([outcome_to_dict(o) for o in outcomes], indent=2))
    else:
        print_outcomes(outcomes, "Backup")
    if not all(outcome.ok for outcome in outcomes):
        sys.exit(1)


@cli.command("status")
@click.argument("target", required=False)
@click.pass_context
def status_command(ctx: click.Context, target: str | None) -> None:
    """Show the local, remote and last-sync digests of targets."""
    manager = get_manager(ctx)
    names = [target] if target else list(manager.config.targets)
    statuses: list[TargetStatus] = []
    failures: dict[str, SyncError] = {}
    for name in names:
        try:
            statuses.append(manager.status(name))
        except SyncError as e:
            failures[name] = e

    if ctx.obj.get("json_output", False):
        entries: list[dict[str, object]] = [status.to_dict() for status in statuses]
        entries += [{"target": name, "error": str(e)} for name, e in failures.items()]
        click.echo(json.dumps(entries, indent=2))
        if failures:
            sys.exit(1)
        return

    table = Table(title="Targets")
    table.add_column("Target", style="cyan")
    table.add_column("Sync", style="magenta")
    table.add_column("State")
    table.add_column("Local", style="green")
    table.add_column("Last sync", style="white")
    table.add_column("Remote", style="blue")
    table.add_column("Last synced", style="dim")

    for status in statuses:
        if status.lastsync_time is None:
            synced = "never"
        else:
            synced = humanize.naturaltime(datetime.now().astimezone() - status.lastsync_time)
        table.add_row(
            status.target,
            "yes" if status.enabled else "no",
            status.state,
            status.local.short(),
            status.lastsync.short(),
            status.remote.short(),
            synced,
        )
    for name, e in failures.items():
        table.add_row(name, "", "[red]failed[/red]", "", "", "", str(e))
    console.print(table)
    if failures:
        sys.exit(1)


@cli.command("hash")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
def hash_command(path: Path) -> None:
    """Print the digest of a directory tree."""
    click.echo(hash_directory(path).hex())


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except SyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
