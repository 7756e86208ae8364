"""
Backup Guard Exception Hierarchy.

Defines all custom exceptions used across the capture and retention engines.
Every fatal condition maps to exactly one of these types so the CLI can emit a
single unambiguous log line naming the violated invariant.
"""

from typing import Any


class BackupGuardError(Exception):
    """Root of the backup-guard errors; `details` is appended to the message."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        pairs = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({pairs})"


class ConfigurationError(BackupGuardError):
    """
    The config file is missing, unreadable, or fails validation.

    Names the file and, where one is at fault, the key. Always raised
    before any artifact is touched.
    """

    def __init__(
        self,
        message: str,
        *,
        config_file: str | None = None,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if config_file:
            details["config_file"] = config_file
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, details=details)
        self.config_file = config_file
        self.config_key = config_key


class CaptureFailure(BackupGuardError):
    """
    A single capture run did not produce a trustworthy artifact.

    Raised when the dump exits non-zero, writes an empty file, or the
    staging artifact cannot be published under its final name.
    Local to one run: the staging file is cleaned up and nothing is retried.
    """

    def __init__(
        self,
        message: str,
        *,
        exit_status: int | None = None,
        staging_path: str | None = None,
        final_path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if exit_status is not None:
            details["exit_status"] = exit_status
        if staging_path:
            details["staging_path"] = staging_path
        if final_path:
            details["final_path"] = final_path

        super().__init__(message, details=details)
        self.exit_status = exit_status
        self.staging_path = staging_path
        self.final_path = final_path


class SafetyViolation(BackupGuardError):
    """
    The retention working root failed a path safety check.

    This security-critical error aborts the whole retention run before
    any enumeration or deletion takes place. It is never partially applied.
    """

    def __init__(
        self,
        message: str,
        *,
        check: str,
        candidate_root: str | None = None,
        allowed_root: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a SafetyViolation.

        Args:
            message: Human-readable error message
            check: Name of the failed check
            candidate_root: Working root the engine was told to operate on
            allowed_root: Root deletion is pinned to
            expected: Canonical form of the allowed root, if computed
            actual: Canonical form of the candidate root, if computed
            details: Optional structured data for debugging
        """
        details = details or {}
        details["check"] = check
        if candidate_root is not None:
            details["candidate_root"] = candidate_root
        if allowed_root is not None:
            details["allowed_root"] = allowed_root
        if expected is not None:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual

        super().__init__(message, details=details)
        self.check = check
        self.candidate_root = candidate_root
        self.allowed_root = allowed_root
        self.expected = expected
        self.actual = actual


class LockUnavailableError(BackupGuardError):
    """Another run of the same engine currently holds the run lock."""

    def __init__(
        self,
        message: str = "Another run holds the lock",
        *,
        lock_path: str | None = None,
        engine: str | None = None,
    ):
        details: dict[str, Any] = {}
        if lock_path:
            details["lock_path"] = lock_path
        if engine:
            details["engine"] = engine

        super().__init__(message, details=details)
        self.lock_path = lock_path
        self.engine = engine
