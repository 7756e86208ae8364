"""Pytest configuration and fixtures."""

import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
import yaml

from backup_guard.dump import DumpResult
from backup_guard.fs import LocalFilesystem
from backup_guard.monitoring.logs import reset_logging

PREFIX = "VISTAR"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # Resolve so that comparisons against canonical paths hold (e.g. /tmp -> /private/tmp)
        yield Path(tmpdir).resolve()


@pytest.fixture
def backup_root(temp_dir: Path) -> Path:
    """Provide an existing, empty backup root."""
    root = temp_dir / "backups"
    root.mkdir()
    return root


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed, timezone-aware local instant: 2026-01-31 16:07:11."""
    return datetime(2026, 1, 31, 16, 7, 11).astimezone()


@pytest.fixture(autouse=True)
def _reset_backup_guard_logging() -> Generator[None, None, None]:
    """Detach file handlers installed by a test so temp dirs can be removed."""
    yield
    reset_logging()


class FakeDump:
    """
    Stand-in for the dump collaborator.

    Writes `payload` to the output path (unless None), appends a diagnostic
    line to the error sink, and returns `exit_status`.
    """

    def __init__(
        self,
        exit_status: int = 0,
        payload: bytes | None = b"PGDMP custom-format-bytes",
        on_run: Callable[[Path], Any] | None = None,
        raises: BaseException | None = None,
    ):
        self.exit_status = exit_status
        self.payload = payload
        self.on_run = on_run
        self.raises = raises
        self.calls: list[tuple[str, Path, Path]] = []

    def run(self, source_database: str, output_path: Path, error_sink: Path) -> DumpResult:
        self.calls.append((source_database, output_path, error_sink))
        if self.payload is not None:
            output_path.write_bytes(self.payload)
        error_sink.parent.mkdir(parents=True, exist_ok=True)
        with open(error_sink, "a") as f:
            f.write(f"fake dump of {source_database} exit={self.exit_status}\n")
        if self.on_run is not None:
            self.on_run(output_path)
        if self.raises is not None:
            raise self.raises
        return DumpResult(exit_status=self.exit_status, command=["fake_dump", source_database])


class RecordingFilesystem(LocalFilesystem):
    """LocalFilesystem that records every call made through it."""

    MUTATIONS = {"ensure_directory", "publish", "delete_file", "remove_empty_directory"}
    ENUMERATIONS = {"iter_files", "walk_bottom_up"}

    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))

    def called(self, names: set[str]) -> list[tuple[str, tuple]]:
        return [c for c in self.calls if c[0] in names]

    @property
    def mutations(self) -> list[tuple[str, tuple]]:
        return self.called(self.MUTATIONS)

    @property
    def enumerations(self) -> list[tuple[str, tuple]]:
        return self.called(self.ENUMERATIONS)

    def ensure_directory(self, path):
        self._record("ensure_directory", path)
        return super().ensure_directory(path)

    def publish(self, staging, final):
        self._record("publish", staging, final)
        return super().publish(staging, final)

    def delete_file(self, path):
        self._record("delete_file", path)
        return super().delete_file(path)

    def remove_empty_directory(self, path):
        self._record("remove_empty_directory", path)
        return super().remove_empty_directory(path)

    def stat(self, path):
        self._record("stat", path)
        return super().stat(path)

    def is_directory(self, path):
        self._record("is_directory", path)
        return super().is_directory(path)

    def canonicalize(self, path):
        self._record("canonicalize", path)
        return super().canonicalize(path)

    def iter_files(self, root, suffix):
        self._record("iter_files", root, suffix)
        return super().iter_files(root, suffix)

    def walk_bottom_up(self, root):
        self._record("walk_bottom_up", root)
        return super().walk_bottom_up(root)


@pytest.fixture
def recording_fs() -> RecordingFilesystem:
    return RecordingFilesystem()


def make_artifact(
    root: Path,
    created: datetime,
    prefix: str = PREFIX,
    content: bytes = b"backup-bytes",
    bucket: str | None = None,
) -> Path:
    """Create a final artifact for `created` with its mtime set to that instant."""
    date_dir = root / (bucket or created.strftime("%Y-%m-%d"))
    date_dir.mkdir(parents=True, exist_ok=True)
    path = date_dir / f"{prefix}-{created.strftime('%Y-%m-%d_%H-%M-%S')}.backup"
    path.write_bytes(content)
    set_mtime(path, created)
    return path


def set_mtime(path: Path, instant: datetime) -> None:
    ts = instant.timestamp()
    os.utime(path, (ts, ts))


def snapshot_tree(root: Path) -> set[str]:
    """Every file and directory path under root, relative to root."""
    entries = set()
    for dirpath, dirnames, filenames in os.walk(root):
        for name in (*dirnames, *filenames):
            entries.add(os.path.relpath(os.path.join(dirpath, name), root))
    return entries


def minutes_ago(now: datetime, minutes: float) -> datetime:
    return now - timedelta(minutes=minutes)


def base_config(root: Path, log_dir: Path, **retention) -> dict[str, Any]:
    """A valid raw configuration mapping."""
    policy = {"unit": "days", "period": 10, "enabled": True, "dry_run": False}
    policy.update(retention)
    return {
        "source_database": "govt",
        "destination_root": str(root),
        "allowed_root": str(root),
        "artifact_prefix": PREFIX,
        "retention": policy,
        "logging": {"directory": str(log_dir), "console": False},
        "lock": {"directory": str(log_dir)},
    }


@pytest.fixture
def log_dir(temp_dir: Path) -> Path:
    path = temp_dir / "logs"
    path.mkdir()
    return path


@pytest.fixture
def write_config(temp_dir: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a config mapping to a YAML file and return its path."""

    def _write(data: dict[str, Any], name: str = "config.yaml") -> Path:
        path = temp_dir / name
        path.write_text(yaml.safe_dump(data))
        return path

    return _write
