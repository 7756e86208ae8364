"""
Backup Guard Core Module.

Provides the exception hierarchy shared by the capture and retention engines.
"""

__all__ = [
    "BackupGuardError",
    "ConfigurationError",
    "CaptureFailure",
    "SafetyViolation",
    "LockUnavailableError",
]

from backup_guard.core.exceptions import (
    BackupGuardError,
    CaptureFailure,
    ConfigurationError,
    LockUnavailableError,
    SafetyViolation,
)
