"""
Retention engine.

Order of operations for one run:

1. Validate the working root against the allowed root (fatal on failure)
2. Honour the kill-switch: when disabled, stop before any enumeration
3. Compute the cutoff
4. Enumerate and delete candidates through the dry-run guard
5. Sweep empty directories and report
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from backup_guard.artifacts.models import RetentionPolicy, RetentionReport
from backup_guard.artifacts.naming import date_key, local_now
from backup_guard.fs import LocalFilesystem
from backup_guard.monitoring.logs import log_success

from .cutoff import compute_cutoff
from .executor import DeletionExecutor
from .guard import DryRunGuard
from .safety import PathSafetyValidator

logger = logging.getLogger(__name__)


class RetentionEngine:
    """
    Deletes expired backup artifacts, confined to one pinned root.

    The allowed root is supplied separately from the working root passed to
    run(); the two are compared on every run to catch configuration drift.
    """

    def __init__(
        self,
        policy: RetentionPolicy,
        allowed_root: Path | str,
        filesystem: LocalFilesystem | None = None,
        validator: PathSafetyValidator | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the retention engine.

        Args:
            policy: Retention policy for this run
            allowed_root: The only root deletion is permitted under
            filesystem: Filesystem boundary (default: local filesystem)
            validator: Path safety validator (default: built on `filesystem`)
            clock: Returns the current aware datetime (default: local time)
        """
        self._policy = policy
        self._allowed_root = allowed_root
        self._fs = filesystem or LocalFilesystem()
        self._validator = validator or PathSafetyValidator(self._fs)
        self._clock = clock or local_now

    @property
    def policy(self) -> RetentionPolicy:
        return self._policy

    def run(self, working_root: Path | str, now: datetime | None = None) -> RetentionReport:
        """
        Execute one retention pass.

        Args:
            working_root: Root the engine is told to operate on
            now: Override for the current instant

        Returns:
            RetentionReport summarising deleted (or would-be deleted) artifacts

        Raises:
            SafetyViolation: If the working root fails any path safety check
        """
        policy = self._policy
        logger.info("Starting retention cleanup")
        logger.info(
            f"Config: Unit={policy.unit.value} | Period={policy.period} | "
            f"Enabled={policy.enabled} | DryRun={policy.dry_run}"
        )

        root = self._validator.ensure_safe(working_root, self._allowed_root)
        logger.info(f"[SAFETY] All safety checks passed. Allowed directory: {root}")

        report = RetentionReport(
            enabled=policy.enabled,
            dry_run=policy.dry_run,
            unit=policy.unit,
            period=policy.period,
            root=root,
        )

        if not policy.enabled:
            logger.info("Retention cleanup is currently DISABLED via kill-switch. Exiting.")
            return report

        now = now or self._clock()
        if now.tzinfo is None:
            now = now.astimezone()
        cutoff = compute_cutoff(policy, now)
        report.cutoff = cutoff
        logger.info(
            f"Keeping {policy.period} {policy.unit.value}; cutoff: "
            f"{cutoff.instant.strftime('%Y-%m-%d %H:%M:%S')}"
        )

        guard = DryRunGuard(self._fs, dry_run=policy.dry_run)
        executor = DeletionExecutor(self._fs, guard)
        # Captures may still be writing into today's or yesterday's bucket
        protected = {root / date_key(now), root / date_key(now - timedelta(days=1))}
        executor.execute(root, cutoff, report, protected=protected)
        report.records = list(guard.records)

        prefix = "[DRY-RUN] " if policy.dry_run else ""
        log_success(logger, f"{prefix}{report.summary()}")
        logger.info("Retention cleanup completed")
        return report
