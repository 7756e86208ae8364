"""
Backup Guard - crash-safe database backups with guarded retention.

Captures a database into immutable, date-partitioned backup artifacts using a
write-to-staging, validate, then atomically publish protocol, and enforces a
time-based retention policy that can only ever delete inside a pinned root.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
