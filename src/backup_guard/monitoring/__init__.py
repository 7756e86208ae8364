"""
Backup Guard Monitoring Module.

Log sink configuration shared by the capture and retention engines.
"""

from .logs import (
    SUCCESS,
    configure_logging,
    log_success,
    reset_logging,
)

__all__ = [
    "SUCCESS",
    "configure_logging",
    "log_success",
    "reset_logging",
]
