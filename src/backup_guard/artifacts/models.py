"""
Pydantic models for backup capture and retention.

Defines the backup artifact, its staging counterpart, the retention policy
value object, and the result types reported by both engines.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class RetentionUnit(str, Enum):
    """Granularity of the retention window."""

    DAYS = "days"
    MINUTES = "minutes"


class RecordKind(str, Enum):
    """Kind of filesystem entry a deletion record refers to."""

    FILE = "file"
    DIRECTORY = "directory"


class RetentionPolicy(BaseModel):
    """How long artifacts are kept, and whether retention may act at all."""

    model_config = {"frozen": True, "extra": "forbid"}

    unit: RetentionUnit = Field(description="Unit of the retention period")
    period: int = Field(gt=0, strict=True, description="Number of units to keep")
    enabled: bool = Field(strict=True, description="Master kill-switch")
    dry_run: bool = Field(
        strict=True, description="Identify candidates without mutating anything"
    )


class BackupArtifact(BaseModel):
    """One completed, trustworthy snapshot of the source database."""

    model_config = {"frozen": True}

    created_at: datetime = Field(description="Moment capture began, second precision")
    size_bytes: int = Field(description="Size of the published artifact")
    source_database: str = Field(description="Database the dump was taken from")
    location: Path = Field(description="Final path of the artifact")

    @field_validator("size_bytes")
    @classmethod
    def validate_size(cls, v: int) -> int:
        """A zero-byte artifact must never exist under a final name."""
        if v <= 0:
            raise ValueError("size_bytes must be greater than zero")
        return v

    @field_validator("created_at")
    @classmethod
    def truncate_created_at(cls, v: datetime) -> datetime:
        """Drop sub-second precision."""
        return v.replace(microsecond=0)


class StagingArtifact(BaseModel):
    """A provisional byte stream written during capture, hidden from readers."""

    model_config = {"frozen": True}

    created_at: datetime
    source_database: str
    location: Path = Field(description="Hidden staging path")
    final_location: Path = Field(description="Path the artifact is published to")


class CaptureOutcome(BaseModel):
    """Result of one capture run."""

    success: bool = Field(description="Whether a valid artifact was published")
    artifact: BackupArtifact | None = Field(default=None)
    exit_status: int | None = Field(default=None, description="Dump exit status")
    diagnostic: str | None = Field(default=None, description="Failure description")
    staging_removed: bool = Field(
        default=False, description="Whether a failed run removed its staging file"
    )

    @classmethod
    def succeeded(cls, artifact: BackupArtifact, exit_status: int = 0) -> "CaptureOutcome":
        return cls(success=True, artifact=artifact, exit_status=exit_status)

    @classmethod
    def failed(
        cls,
        exit_status: int | None,
        diagnostic: str,
        staging_removed: bool = True,
    ) -> "CaptureOutcome":
        return cls(
            success=False,
            exit_status=exit_status,
            diagnostic=diagnostic,
            staging_removed=staging_removed,
        )


class Cutoff(BaseModel):
    """The instant before which artifacts are eligible for deletion."""

    model_config = {"frozen": True}

    instant: datetime
    unit: RetentionUnit
    date_key: str | None = Field(
        default=None, description="Day bucket targeted in days mode"
    )


class DeletionRecord(BaseModel):
    """One performed, planned, or failed removal."""

    path: Path
    kind: RecordKind = RecordKind.FILE
    size_bytes: int = 0
    modified_at: datetime | None = None
    performed: bool = Field(
        default=False, description="False for dry-run and failed removals"
    )
    error: str | None = None


class RetentionReport(BaseModel):
    """Summary of one retention run."""

    enabled: bool
    dry_run: bool
    unit: RetentionUnit
    period: int
    root: Path | None = None
    cutoff: Cutoff | None = None
    target_directory: Path | None = None
    deleted_count: int = Field(default=0, description="Artifacts deleted or would-be deleted")
    reclaimed_bytes: int = Field(default=0, description="Bytes freed or would-be freed")
    records: list[DeletionRecord] = Field(default_factory=list)
    removed_directories: list[Path] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.records if r.error is not None)

    def summary(self) -> str:
        """One-line summary suitable for a log line."""
        if not self.enabled:
            return "Retention disabled via kill-switch; nothing examined"
        verb = "Would delete" if self.dry_run else "Deleted"
        line = (
            f"{verb} {self.deleted_count} backup file(s) | "
            f"Freed: {format_size(self.reclaimed_bytes)}"
        )
        if self.errors:
            line += f" | Errors: {len(self.errors)}"
        return line


def format_size(num_bytes: int) -> str:
    """Render a byte count the way `du -h` does (512B, 1.5K, 12M)."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            if unit == "B":
                return f"{int(size)}B"
            if size < 10:
                return f"{size:.1f}{unit}"
            return f"{size:.0f}{unit}"
        size /= 1024
    return f"{num_bytes}B"
