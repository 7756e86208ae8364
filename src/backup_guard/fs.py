"""
Filesystem boundary.

The engines never touch `os` or `shutil` directly; they go through a
LocalFilesystem instance so that every mutation and enumeration is visible
(and countable) at one seam. There is no recursive delete here.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator


@dataclass(frozen=True)
class FileStat:
    """Size and modification time of a file."""

    size_bytes: int
    mtime: float

    @property
    def modified_at(self) -> datetime:
        return datetime.fromtimestamp(int(self.mtime)).astimezone()


class LocalFilesystem:
    """Local filesystem operations used by the capture and retention engines."""

    # Mutations

    def ensure_directory(self, path: Path) -> None:
        """Create a directory and its parents; existing directories are fine."""
        Path(path).mkdir(parents=True, exist_ok=True)

    def publish(self, staging: Path, final: Path) -> None:
        """
        Atomically make `staging` visible as `final`.

        Hard-links the staging file to the final name, then unlinks the
        staging name. The final name appears in one step with complete
        content, and an existing final name raises FileExistsError instead
        of being replaced.
        """
        os.link(staging, final)
        os.unlink(staging)

    def delete_file(self, path: Path) -> None:
        os.unlink(path)

    def remove_empty_directory(self, path: Path) -> None:
        """Remove a directory only if it has no entries (rmdir semantics)."""
        os.rmdir(path)

    # Queries

    def stat(self, path: Path) -> FileStat:
        st = os.stat(path)
        return FileStat(size_bytes=st.st_size, mtime=st.st_mtime)

    def is_directory(self, path: Path) -> bool:
        return os.path.isdir(path)

    def canonicalize(self, path: Path | str) -> str:
        """
        Resolve symlinks, `.` and `..` into an absolute path.

        Raises OSError (or RuntimeError for symlink loops on older
        interpreters) when any component cannot be resolved.
        """
        return str(Path(path).resolve(strict=True))

    def iter_files(self, root: Path, suffix: str) -> Iterator[Path]:
        """Yield regular files under `root` whose name ends with `suffix`."""
        for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
            dirnames.sort()
            for name in sorted(filenames):
                if not name.endswith(suffix):
                    continue
                path = Path(dirpath) / name
                if path.is_file() and not path.is_symlink():
                    yield path

    def walk_bottom_up(self, root: Path) -> Iterator[tuple[Path, list[str], list[str]]]:
        """Yield (directory, subdirectory names, file names), deepest first."""
        for dirpath, dirnames, filenames in os.walk(root, topdown=False, followlinks=False):
            yield Path(dirpath), dirnames, filenames
