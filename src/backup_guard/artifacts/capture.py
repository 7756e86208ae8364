"""
Atomic backup capture.

One capture run writes the dump to a hidden staging file, validates it, and
only then publishes it under its final name with an atomic, non-replacing
rename. A reader of the artifact set sees either no artifact or a complete
one; a failed run leaves nothing behind under a final name.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from backup_guard.core.exceptions import CaptureFailure
from backup_guard.dump import DumpRunner
from backup_guard.fs import LocalFilesystem
from backup_guard.monitoring.logs import log_success

from .models import BackupArtifact, CaptureOutcome, StagingArtifact, format_size
from .naming import STAGING_SUFFIX, ArtifactNaming, local_now

logger = logging.getLogger(__name__)


class CaptureEngine:
    """
    Produces one backup artifact per invocation.

    Protocol:
    1. Derive date/timestamp keys from the clock (second precision)
    2. Ensure the day directory exists
    3. Dump into the hidden staging path, diagnostics to the error sink
    4. Accept only exit status 0 AND a non-empty staging file
    5. Publish staging -> final atomically, never replacing an existing file
    6. On any failure remove the staging file and report the exit status
    """

    def __init__(
        self,
        dumper: DumpRunner,
        naming: ArtifactNaming,
        error_sink: Path,
        filesystem: LocalFilesystem | None = None,
        clock: Callable[[], datetime] | None = None,
        stale_staging_minutes: int | None = 120,
    ):
        """
        Initialize the capture engine.

        Args:
            dumper: Capability that writes a dump to a path
            naming: Artifact naming for the configured prefix
            error_sink: File the dump's diagnostic stream is appended to
            filesystem: Filesystem boundary (default: local filesystem)
            clock: Returns the current aware datetime (default: local time)
            stale_staging_minutes: Age after which leftover staging files from
                killed runs are removed; None disables the sweep
        """
        self._dumper = dumper
        self._naming = naming
        self._error_sink = Path(error_sink)
        self._fs = filesystem or LocalFilesystem()
        self._clock = clock or local_now
        self._stale_staging_minutes = stale_staging_minutes

    def capture(self, source_database: str, destination_root: Path) -> CaptureOutcome:
        """
        Run one capture.

        Args:
            source_database: Name of the database to dump
            destination_root: Base directory of the date-partitioned tree

        Returns:
            CaptureOutcome describing the published artifact or the failure
        """
        started = self._clock().replace(microsecond=0)
        date_dir, staging_path, final_path = self._naming.paths(Path(destination_root), started)
        staging = StagingArtifact(
            created_at=started,
            source_database=source_database,
            location=staging_path,
            final_location=final_path,
        )

        logger.info(f"Starting backup for database: {source_database}")
        logger.info(f"Backup destination: {final_path}")

        try:
            self._fs.ensure_directory(date_dir)
        except OSError as e:
            logger.error(f"Backup FAILED | Cannot create directory {date_dir}: {e}")
            return CaptureOutcome.failed(None, f"Cannot create directory {date_dir}: {e}", False)

        self.sweep_stale_staging(Path(destination_root), started)

        try:
            artifact = self._dump_and_publish(staging)
        except CaptureFailure as e:
            removed = self._discard(staging_path)
            logger.error(
                f"Backup FAILED | Exit code: {e.exit_status} | {e.message} | "
                f"Check {self._error_sink} for details"
            )
            return CaptureOutcome.failed(e.exit_status, e.message, removed)
        except BaseException:
            # Interrupted mid-dump; drop the staging file before propagating
            self._discard(staging_path)
            raise

        log_success(
            logger,
            f"Backup completed successfully | Size: {format_size(artifact.size_bytes)} | "
            f"File: {artifact.location}",
        )
        return CaptureOutcome.succeeded(artifact)

    def _dump_and_publish(self, staging: StagingArtifact) -> BackupArtifact:
        try:
            result = self._dumper.run(
                staging.source_database, staging.location, self._error_sink
            )
        except OSError as e:
            raise CaptureFailure(
                f"Dump could not be started: {e}",
                staging_path=str(staging.location),
            ) from e

        size = self._staged_size(staging.location)

        if result.exit_status != 0:
            raise CaptureFailure(
                f"Dump exited with status {result.exit_status}",
                exit_status=result.exit_status,
                staging_path=str(staging.location),
            )
        if size <= 0:
            raise CaptureFailure(
                "Dump produced an empty file",
                exit_status=result.exit_status,
                staging_path=str(staging.location),
            )

        try:
            self._fs.publish(staging.location, staging.final_location)
        except FileExistsError as e:
            raise CaptureFailure(
                "Final artifact already exists; refusing to replace it",
                exit_status=result.exit_status,
                staging_path=str(staging.location),
                final_path=str(staging.final_location),
            ) from e
        except OSError as e:
            raise CaptureFailure(
                f"Could not publish artifact: {e}",
                exit_status=result.exit_status,
                staging_path=str(staging.location),
                final_path=str(staging.final_location),
            ) from e

        return BackupArtifact(
            created_at=staging.created_at,
            size_bytes=size,
            source_database=staging.source_database,
            location=staging.final_location,
        )

    def _staged_size(self, path: Path) -> int:
        """Size of the staging file; a missing file counts as empty."""
        try:
            return self._fs.stat(path).size_bytes
        except FileNotFoundError:
            return 0

    def _discard(self, path: Path) -> bool:
        """Best-effort removal of a staging file. Absence is not an error."""
        try:
            self._fs.delete_file(path)
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error(f"Could not remove staging file {path}: {e}")
            return False

    def sweep_stale_staging(self, destination_root: Path, now: datetime) -> int:
        """
        Remove staging files orphaned by killed runs.

        Only hidden staging files of this engine's prefix whose mtime is older
        than the configured age are removed; final artifacts are never touched.

        Returns:
            Number of staging files removed
        """
        if self._stale_staging_minutes is None:
            return 0
        if not self._fs.is_directory(destination_root):
            return 0

        threshold = int((now - timedelta(minutes=self._stale_staging_minutes)).timestamp())
        removed = 0

        for path in self._fs.iter_files(destination_root, STAGING_SUFFIX):
            if not self._naming.is_staging(path.name):
                continue
            try:
                if int(self._fs.stat(path).mtime) > threshold:
                    continue
                self._fs.delete_file(path)
                removed += 1
                logger.info(f"Removed orphaned staging file: {path}")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not remove orphaned staging file {path}: {e}")

        return removed
