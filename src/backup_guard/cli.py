"""
Backup Guard CLI - Command-line interface.

Entry points for the scheduler (capture, retention) and read-only operator
commands (check, list).

Exit codes:
    0  run completed (retention completes even when nothing was deleted)
    1  capture failed, or a configuration, safety, or lock error aborted the run
"""

import contextlib
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from backup_guard.artifacts.capture import CaptureEngine
from backup_guard.artifacts.models import RetentionReport, format_size
from backup_guard.artifacts.naming import ARTIFACT_SUFFIX, local_now
from backup_guard.config import BackupConfig, load_config
from backup_guard.core.exceptions import (
    ConfigurationError,
    LockUnavailableError,
    SafetyViolation,
)
from backup_guard.dump import PgDumpRunner
from backup_guard.fs import LocalFilesystem
from backup_guard.locking import RunLock
from backup_guard.monitoring.logs import configure_logging, reset_logging
from backup_guard.retention.engine import RetentionEngine
from backup_guard.retention.safety import PathSafetyValidator

app = typer.Typer(
    name="backup-guard",
    help="Backup Guard - crash-safe database backups with guarded retention",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)

RUN_SEPARATOR = "=" * 42


def _load(config_path: Optional[Path]) -> BackupConfig:
    """Load config or abort with a single fatal line."""
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[FATAL] {e}", style="red", markup=False, soft_wrap=True)
        raise typer.Exit(1)


def _run_lock(cfg: BackupConfig, engine: str):
    if not cfg.lock.enabled:
        return contextlib.nullcontext()
    return RunLock(cfg.lock_dir, engine)


def _validator(cfg: BackupConfig) -> PathSafetyValidator:
    return PathSafetyValidator(extra_denied_roots=cfg.safety.extra_denied_roots)


@app.command()
def capture(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration YAML"
    ),
):
    """Capture one backup artifact of the source database."""
    cfg = _load(config_path)
    configure_logging(
        cfg.log_dir,
        backup_log=cfg.logging.backup_log,
        error_log=cfg.logging.error_log,
        console=cfg.logging.console,
    )

    engine = CaptureEngine(
        dumper=PgDumpRunner.from_settings(cfg.database),
        naming=cfg.naming(),
        error_sink=cfg.log_dir / cfg.logging.error_log,
        stale_staging_minutes=cfg.capture.stale_staging_minutes,
    )

    try:
        with _run_lock(cfg, "capture"):
            outcome = engine.capture(cfg.source_database, cfg.destination_root)
    except LockUnavailableError as e:
        logger.error(f"[FATAL] {e}")
        raise typer.Exit(1)
    finally:
        logger.info(RUN_SEPARATOR)
        reset_logging()

    if not outcome.success:
        raise typer.Exit(1)


@app.command()
def retention(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration YAML"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Report candidates without deleting (never forces live mode)"
    ),
):
    """Delete backup artifacts older than the retention window."""
    cfg = _load(config_path)
    policy = cfg.retention
    if dry_run and not policy.dry_run:
        policy = policy.model_copy(update={"dry_run": True})

    configure_logging(
        cfg.log_dir,
        backup_log=cfg.logging.backup_log,
        error_log=cfg.logging.error_log,
        run_log=cfg.logging.retention_log,
        console=cfg.logging.console,
    )

    engine = RetentionEngine(policy, cfg.allowed_root, validator=_validator(cfg))

    try:
        with _run_lock(cfg, "retention"):
            report = engine.run(cfg.destination_root)
    except SafetyViolation as e:
        logger.error(f"[FATAL] {e}. Aborting to prevent accidental deletion.")
        raise typer.Exit(1)
    except LockUnavailableError as e:
        logger.error(f"[FATAL] {e}")
        raise typer.Exit(1)
    finally:
        logger.info(RUN_SEPARATOR)
        reset_logging()

    _print_report(report)


def _print_report(report: RetentionReport) -> None:
    if not report.enabled:
        console.print("[yellow]Retention is disabled; nothing was examined[/yellow]")
        return

    title = "Retention (dry run)" if report.dry_run else "Retention"
    table = Table(title=title)
    table.add_column("Path", style="cyan")
    table.add_column("Kind")
    table.add_column("Size", justify="right")
    table.add_column("Status")

    for record in report.records:
        if record.error:
            status = "[red]failed[/red]"
        elif record.performed:
            status = "[green]deleted[/green]"
        else:
            status = "[yellow]would delete[/yellow]"
        size = format_size(record.size_bytes) if record.kind.value == "file" else "-"
        table.add_row(str(record.path), record.kind.value, size, status)

    if report.records:
        console.print(table)
    console.print(report.summary())


@app.command()
def check(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration YAML"
    ),
):
    """Validate configuration and path safety without touching anything."""
    cfg = _load(config_path)
    result = _validator(cfg).validate(cfg.destination_root, cfg.allowed_root)

    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Source database", cfg.source_database)
    table.add_row("Destination root", str(cfg.destination_root))
    table.add_row("Allowed root", str(cfg.allowed_root))
    table.add_row("Artifact prefix", cfg.artifact_prefix)
    table.add_row(
        "Retention",
        f"{cfg.retention.period} {cfg.retention.unit.value} | "
        f"enabled={cfg.retention.enabled} | dry_run={cfg.retention.dry_run}",
    )
    table.add_row("Log directory", str(cfg.log_dir))
    console.print(table)

    if not result.ok:
        console.print(
            Panel.fit(f"[red]{result.check}[/red]\n{result.reason}", title="Path safety: FAILED")
        )
        if result.expected is not None:
            console.print(f"  Expected: {result.expected}")
            console.print(f"  Got:      {result.actual}")
        raise typer.Exit(1)

    console.print(
        Panel.fit(f"[green]All safety checks passed[/green]\n{result.resolved_root}", title="Path safety")
    )


@app.command("list")
def list_artifacts(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration YAML"
    ),
):
    """List published backup artifacts (staging files are never shown)."""
    cfg = _load(config_path)
    fs = LocalFilesystem()
    root = cfg.destination_root

    if not fs.is_directory(root):
        console.print(f"[yellow]Destination root does not exist: {root}[/yellow]")
        return

    now = local_now()
    naming = cfg.naming()
    table = Table(title=f"Backup Artifacts ({root})")
    table.add_column("Date", style="cyan")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Age", justify="right")

    count = 0
    total = 0
    for path in fs.iter_files(root, ARTIFACT_SUFFIX):
        try:
            stat = fs.stat(path)
        except FileNotFoundError:
            continue
        created = naming.parse(path.name)
        modified = stat.modified_at
        age = now - modified
        table.add_row(
            path.parent.name,
            path.name if created else f"{path.name} [dim](foreign name)[/dim]",
            format_size(stat.size_bytes),
            _format_age(age.total_seconds()),
        )
        count += 1
        total += stat.size_bytes

    if count == 0:
        console.print("[yellow]No backup artifacts found[/yellow]")
        return

    console.print(table)
    console.print(f"\nTotal artifacts: {count}")
    console.print(f"Total size: {format_size(total)}")


def _format_age(seconds: float) -> str:
    seconds = max(0, int(seconds))
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


@app.command()
def version():
    """Show Backup Guard version."""
    from backup_guard import __version__

    console.print(f"Backup Guard v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
