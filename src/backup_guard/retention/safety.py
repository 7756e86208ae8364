"""
Path safety validation for retention.

Before the retention engine may enumerate or delete anything, the working
root it was told to operate on must pass four checks in order:

    a. it is non-empty
    b. it is not a coarse system path (/, /home, the user's home)
    c. it exists and is a directory
    d. its canonical form equals the canonical form of the allowed root

The first failing check decides the result. The deny-list in (b) is a second
line of defence; (d) is the guarantee.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from backup_guard.core.exceptions import SafetyViolation
from backup_guard.fs import LocalFilesystem

CHECK_EMPTY = "empty_root"
CHECK_DENYLIST = "denylisted_root"
CHECK_DIRECTORY = "not_a_directory"
CHECK_CANONICALIZE = "canonicalize_failed"
CHECK_ALLOWED_ROOT = "allowed_root_mismatch"


def default_denied_roots() -> tuple[str, ...]:
    """Filesystem root, the home root, and the invoking user's home."""
    denied = ["/", "/home"]
    try:
        denied.append(str(Path.home()))
    except RuntimeError:
        pass
    return tuple(denied)


def normalize(path: str) -> str:
    """Lexical normalization: absolute, `.`/`..` collapsed, no trailing slash."""
    normalized = os.path.normpath(os.path.abspath(path))
    # POSIX normpath keeps a leading "//"; the kernel treats it as "/"
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


@dataclass(frozen=True)
class SafetyCheck:
    """Result of validating a candidate root."""

    ok: bool
    check: str | None = None
    reason: str | None = None
    candidate_root: str | None = None
    allowed_root: str | None = None
    expected: str | None = None
    actual: str | None = None

    @property
    def resolved_root(self) -> Path | None:
        """Canonical validated root, set only when validation passed."""
        if self.ok and self.actual is not None:
            return Path(self.actual)
        return None

    def raise_for_violation(self) -> None:
        if self.ok:
            return
        raise SafetyViolation(
            self.reason or "Path safety check failed",
            check=self.check or "unknown",
            candidate_root=self.candidate_root,
            allowed_root=self.allowed_root,
            expected=self.expected,
            actual=self.actual,
        )


class PathSafetyValidator:
    """
    Validates a retention working root against the pinned allowed root.

    Read-only: it never lists directory contents and never mutates anything,
    so calling it twice with the same inputs gives the same answer.
    """

    def __init__(
        self,
        filesystem: LocalFilesystem | None = None,
        denied_roots: tuple[str, ...] | list[str] | None = None,
        extra_denied_roots: tuple[str, ...] | list[str] = (),
    ):
        self._fs = filesystem or LocalFilesystem()
        roots = tuple(denied_roots) if denied_roots is not None else default_denied_roots()
        self._denied = frozenset(normalize(r) for r in (*roots, *extra_denied_roots))

    @property
    def denied_roots(self) -> frozenset[str]:
        return self._denied

    def validate(
        self,
        candidate_root: str | Path | None,
        allowed_root: str | Path | None,
    ) -> SafetyCheck:
        """
        Run all checks in order, stopping at the first failure.

        Args:
            candidate_root: Working root the engine was told to operate on
            allowed_root: The only root deletion is permitted under

        Returns:
            SafetyCheck with ok=True and the canonical root, or the first failure
        """
        candidate = "" if candidate_root is None else str(candidate_root)
        allowed = "" if allowed_root is None else str(allowed_root)

        def fail(check: str, reason: str, **kwargs) -> SafetyCheck:
            return SafetyCheck(
                ok=False,
                check=check,
                reason=reason,
                candidate_root=candidate,
                allowed_root=allowed,
                **kwargs,
            )

        # a. non-empty
        if not candidate.strip():
            return fail(CHECK_EMPTY, "Retention root is empty")

        # b. coarse system paths
        normalized = normalize(candidate)
        if normalized in self._denied:
            return fail(
                CHECK_DENYLIST,
                f"Retention root is a system directory: {candidate}",
            )

        # c. exists and is a directory
        if not self._fs.is_directory(candidate):
            return fail(
                CHECK_DIRECTORY,
                f"Retention root does not exist or is not a directory: {candidate}",
            )

        # d. canonical forms must match exactly
        if not allowed.strip():
            return fail(CHECK_CANONICALIZE, "Allowed root is empty")
        try:
            actual = self._fs.canonicalize(candidate)
            expected = self._fs.canonicalize(allowed)
        except (OSError, RuntimeError) as e:
            return fail(CHECK_CANONICALIZE, f"Cannot canonicalize retention paths: {e}")

        if os.fsencode(actual) != os.fsencode(expected):
            return fail(
                CHECK_ALLOWED_ROOT,
                "Retention root does not match allowed root",
                expected=expected,
                actual=actual,
            )

        return SafetyCheck(
            ok=True,
            candidate_root=candidate,
            allowed_root=allowed,
            expected=expected,
            actual=actual,
        )

    def ensure_safe(
        self,
        candidate_root: str | Path | None,
        allowed_root: str | Path | None,
    ) -> Path:
        """
        Validate and return the canonical root, or raise SafetyViolation.
        """
        result = self.validate(candidate_root, allowed_root)
        result.raise_for_violation()
        return result.resolved_root  # type: ignore[return-value]
