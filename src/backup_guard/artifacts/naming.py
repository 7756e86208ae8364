"""
On-disk naming of backup artifacts.

Layout under a destination root:

    {root}/{YYYY-MM-DD}/{prefix}-{YYYY-MM-DD_HH-MM-SS}.backup   (final)
    {root}/{YYYY-MM-DD}/.{prefix}-{YYYY-MM-DD_HH-MM-SS}.tmp     (staging)

Staging names are hidden and never carry the `.backup` suffix, so any scan
for artifacts skips them.
"""

import re
from datetime import datetime
from pathlib import Path

ARTIFACT_SUFFIX = ".backup"
STAGING_SUFFIX = ".tmp"

DATE_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def date_key(instant: datetime) -> str:
    """Canonical day-bucket name for an instant."""
    return instant.strftime(DATE_FORMAT)


def timestamp_key(instant: datetime) -> str:
    """Second-precision timestamp used in artifact filenames."""
    return instant.strftime(TIMESTAMP_FORMAT)


class ArtifactNaming:
    """Builds and parses artifact paths for one prefix."""

    def __init__(self, prefix: str):
        if not prefix or prefix.startswith(".") or "/" in prefix or "\\" in prefix:
            raise ValueError(f"Invalid artifact prefix: {prefix!r}")
        self.prefix = prefix
        self._final_re = re.compile(
            rf"^{re.escape(prefix)}-(\d{{4}}-\d{{2}}-\d{{2}}_\d{{2}}-\d{{2}}-\d{{2}}){re.escape(ARTIFACT_SUFFIX)}$"
        )
        self._staging_re = re.compile(
            rf"^\.{re.escape(prefix)}-\d{{4}}-\d{{2}}-\d{{2}}_\d{{2}}-\d{{2}}-\d{{2}}{re.escape(STAGING_SUFFIX)}$"
        )

    def final_name(self, instant: datetime) -> str:
        return f"{self.prefix}-{timestamp_key(instant)}{ARTIFACT_SUFFIX}"

    def staging_name(self, instant: datetime) -> str:
        return f".{self.prefix}-{timestamp_key(instant)}{STAGING_SUFFIX}"

    def paths(self, root: Path, instant: datetime) -> tuple[Path, Path, Path]:
        """Return (date directory, staging path, final path) for an instant."""
        date_dir = Path(root) / date_key(instant)
        return (
            date_dir,
            date_dir / self.staging_name(instant),
            date_dir / self.final_name(instant),
        )

    def parse(self, name: str) -> datetime | None:
        """Recover the capture timestamp from a final artifact name."""
        match = self._final_re.match(name)
        if match is None:
            return None
        try:
            return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
        except ValueError:
            return None

    def is_staging(self, name: str) -> bool:
        return self._staging_re.match(name) is not None


def local_now() -> datetime:
    """Current local time, timezone-aware. Day buckets follow local dates."""
    return datetime.now().astimezone()
