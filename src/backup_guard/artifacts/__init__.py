"""
Backup Guard Artifacts Module.

Provides the artifact data model, on-disk naming, and the atomic capture
engine that produces backup artifacts.
"""

from .models import (
    BackupArtifact,
    CaptureOutcome,
    Cutoff,
    DeletionRecord,
    RecordKind,
    RetentionPolicy,
    RetentionReport,
    RetentionUnit,
    StagingArtifact,
    format_size,
)
from .naming import ARTIFACT_SUFFIX, STAGING_SUFFIX, ArtifactNaming, date_key, timestamp_key
from .capture import CaptureEngine

__all__ = [
    # Models
    "BackupArtifact",
    "StagingArtifact",
    "CaptureOutcome",
    "Cutoff",
    "DeletionRecord",
    "RecordKind",
    "RetentionPolicy",
    "RetentionReport",
    "RetentionUnit",
    "format_size",
    # Naming
    "ARTIFACT_SUFFIX",
    "STAGING_SUFFIX",
    "ArtifactNaming",
    "date_key",
    "timestamp_key",
    # Capture
    "CaptureEngine",
]
