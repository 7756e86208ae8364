"""
Dry-run guard around destructive retention operations.

The guard is the only object in the retention path allowed to delete files
or remove directories. In dry-run mode it records what it would have done
and leaves the filesystem untouched.
"""

import logging
from datetime import datetime
from pathlib import Path

from backup_guard.artifacts.models import DeletionRecord, RecordKind, format_size
from backup_guard.fs import LocalFilesystem

logger = logging.getLogger(__name__)


class DryRunGuard:
    """Performs, or in dry-run only records, file and directory removals."""

    def __init__(self, filesystem: LocalFilesystem, dry_run: bool):
        self._fs = filesystem
        self.dry_run = dry_run
        self.records: list[DeletionRecord] = []

    def delete_file(
        self,
        path: Path,
        size_bytes: int = 0,
        modified_at: datetime | None = None,
    ) -> DeletionRecord:
        """
        Delete one artifact file.

        Errors are captured on the returned record rather than raised, so one
        failed candidate never stops the others.
        """
        record = DeletionRecord(
            path=path,
            kind=RecordKind.FILE,
            size_bytes=size_bytes,
            modified_at=modified_at,
        )
        created = modified_at.strftime("%Y-%m-%d %H:%M:%S") if modified_at else "unknown"
        detail = f"{path.name} | Created: {created} | Size: {format_size(size_bytes)}"

        if self.dry_run:
            logger.info(f"[DRY-RUN] Would delete: {detail}")
        else:
            try:
                self._fs.delete_file(path)
                record.performed = True
                logger.info(f"Deleted: {detail}")
            except OSError as e:
                record.error = f"Failed to delete {path}: {e}"
                logger.error(record.error)

        self.records.append(record)
        return record

    def remove_empty_directory(self, path: Path) -> DeletionRecord:
        """Remove a directory that has no entries; never recursive."""
        record = DeletionRecord(path=path, kind=RecordKind.DIRECTORY)

        if self.dry_run:
            logger.info(f"[DRY-RUN] Would remove empty directory: {path}")
        else:
            try:
                self._fs.remove_empty_directory(path)
                record.performed = True
                logger.info(f"Removed empty directory: {path}")
            except OSError as e:
                record.error = f"Failed to remove directory {path}: {e}"
                logger.error(record.error)

        self.records.append(record)
        return record
