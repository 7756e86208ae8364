"""
Backup Guard Retention Module.

Path safety validation, cutoff computation, dry-run guarded deletion and
the retention engine that runs them in order.
"""

from .cutoff import compute_cutoff
from .engine import RetentionEngine
from .executor import DeletionExecutor
from .guard import DryRunGuard
from .safety import PathSafetyValidator, SafetyCheck

__all__ = [
    "compute_cutoff",
    "DeletionExecutor",
    "DryRunGuard",
    "PathSafetyValidator",
    "RetentionEngine",
    "SafetyCheck",
]
