"""
Retention cutoff arithmetic.

The cutoff is always one unit further back than the configured period, so an
artifact exactly `period` units old is kept and never borderline-deleted.
"""

from datetime import datetime, timedelta

from backup_guard.artifacts.models import Cutoff, RetentionPolicy, RetentionUnit
from backup_guard.artifacts.naming import date_key


def compute_cutoff(policy: RetentionPolicy, now: datetime) -> Cutoff:
    """
    Compute the deletion cutoff for a policy.

    Args:
        policy: Active retention policy
        now: Current instant; naive values are taken as local time

    Returns:
        Cutoff with the instant, plus the day-bucket key in days mode
    """
    if now.tzinfo is None:
        now = now.astimezone()
    now = now.replace(microsecond=0)

    units = policy.period + 1

    if policy.unit is RetentionUnit.MINUTES:
        return Cutoff(instant=now - timedelta(minutes=units), unit=policy.unit)

    instant = now - timedelta(days=units)
    return Cutoff(instant=instant, unit=policy.unit, date_key=date_key(instant))
