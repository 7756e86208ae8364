"""
Candidate enumeration and deletion.

Two addressing strategies, selected by the policy unit:

- minutes: every `*.backup` file under the validated root whose mtime is
  strictly before the cutoff instant is a candidate
- days: every `*.backup` file inside the single day bucket named by the
  cutoff's date key is a candidate, with no per-file age check

Afterwards, directories left empty are removed bottom-up. All removals go
through the DryRunGuard.
"""

import logging
from pathlib import Path

from backup_guard.artifacts.models import Cutoff, RetentionReport, RetentionUnit, format_size
from backup_guard.artifacts.naming import ARTIFACT_SUFFIX
from backup_guard.fs import FileStat, LocalFilesystem

from .guard import DryRunGuard

logger = logging.getLogger(__name__)


class DeletionExecutor:
    """
    Identifies deletion candidates under a validated root and removes them.

    The root handed to execute() must already have passed the path safety
    validator; nothing here re-checks it.
    """

    def __init__(self, filesystem: LocalFilesystem, guard: DryRunGuard):
        self._fs = filesystem
        self._guard = guard

    def execute(
        self,
        root: Path,
        cutoff: Cutoff,
        report: RetentionReport,
        protected: set[Path] | None = None,
    ) -> RetentionReport:
        """
        Delete candidates and sweep empty directories.

        Args:
            root: Canonical, validated retention root
            cutoff: Cutoff computed for the active policy
            report: Report to accumulate counts into
            protected: Directories the empty-directory sweep must leave alone

        Returns:
            The same report, filled in
        """
        if cutoff.unit is RetentionUnit.MINUTES:
            candidates = self._collect_by_age(root, cutoff, report)
        else:
            candidates = self._collect_day_bucket(root, cutoff, report)

        gone: set[Path] = set()
        for path, stat in candidates:
            record = self._guard.delete_file(path, stat.size_bytes, stat.modified_at)
            if record.error is not None:
                report.errors.append(record.error)
                continue
            gone.add(path)
            report.deleted_count += 1
            report.reclaimed_bytes += stat.size_bytes

        self.sweep_empty_directories(root, gone, report, protected or set())
        return report

    def _collect_by_age(
        self, root: Path, cutoff: Cutoff, report: RetentionReport
    ) -> list[tuple[Path, FileStat]]:
        threshold = int(cutoff.instant.timestamp())
        logger.info(
            f"Minutes mode: identifying backups modified before "
            f"{cutoff.instant.strftime('%Y-%m-%d %H:%M:%S')}"
        )

        candidates = []
        for path in self._fs.iter_files(root, ARTIFACT_SUFFIX):
            stat = self._stat(path, report)
            if stat is not None and int(stat.mtime) < threshold:
                candidates.append((path, stat))
        return candidates

    def _collect_day_bucket(
        self, root: Path, cutoff: Cutoff, report: RetentionReport
    ) -> list[tuple[Path, FileStat]]:
        target = root / str(cutoff.date_key)
        report.target_directory = target
        logger.info(f"Days mode: target folder {cutoff.date_key} ({target})")

        if not self._fs.is_directory(target):
            logger.info(f"No folder found for {cutoff.date_key} - nothing to delete")
            return []

        # The bucket must be a real directory under the root, not a symlink out of it
        try:
            resolved = self._fs.canonicalize(target)
        except (OSError, RuntimeError) as e:
            report.errors.append(f"Cannot resolve day bucket {target}: {e}")
            logger.error(report.errors[-1])
            return []
        if resolved != str(target):
            report.errors.append(f"Day bucket {target} resolves outside the root ({resolved}); skipped")
            logger.error(report.errors[-1])
            return []

        candidates = []
        for path in self._fs.iter_files(target, ARTIFACT_SUFFIX):
            stat = self._stat(path, report)
            if stat is not None:
                candidates.append((path, stat))

        total = sum(s.size_bytes for _, s in candidates)
        logger.info(
            f"Found folder: {target} | Files: {len(candidates)} | Size: {format_size(total)}"
        )
        return candidates

    def _stat(self, path: Path, report: RetentionReport) -> FileStat | None:
        try:
            return self._fs.stat(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            report.errors.append(f"Cannot stat {path}: {e}")
            logger.error(report.errors[-1])
            return None

    def sweep_empty_directories(
        self,
        root: Path,
        gone: set[Path],
        report: RetentionReport,
        protected: set[Path],
    ) -> None:
        """
        Remove directories with no remaining entries, deepest first.

        `gone` holds paths already removed (or, in dry-run, that would have
        been), so a dry-run sweep reports the same directories a live one
        would remove. The root itself is never removed.
        """
        for dirpath, dirnames, filenames in self._fs.walk_bottom_up(root):
            if dirpath == root or dirpath in protected:
                continue
            entries = [dirpath / name for name in (*dirnames, *filenames)]
            if any(entry not in gone for entry in entries):
                continue

            record = self._guard.remove_empty_directory(dirpath)
            if record.error is not None:
                report.errors.append(record.error)
                continue
            gone.add(dirpath)
            report.removed_directories.append(dirpath)
