"""Deactivation rate limiting.

An owner may deactivate at most DEACTIVATE_LIMIT times within a rolling
DEACTIVATE_WINDOW_HOURS window. Every owner deactivation writes one
hosting_deactivations row, and the limit counts those rows, so cycling
a single account through deactivate and reactivate is counted each time.
Admin suspensions write no row.
"""

from datetime import datetime, timedelta, timezone

from hostpanel.extensions import db
from hostpanel.models.hosting import HostingDeactivation


def _window_start(window_hours, now=None):
    now = now or datetime.now(timezone.utc)
    return now - timedelta(hours=window_hours)


def recent_deactivations(owner_id, window_hours=12, now=None):
    """Number of the owner's deactivations inside the window."""
    return HostingDeactivation.query.filter(
        HostingDeactivation.user_id == owner_id,
        HostingDeactivation.created_at >= _window_start(window_hours, now),
    ).count()


def allow_deactivate(owner_id, limit=2, window_hours=12, now=None):
    return recent_deactivations(owner_id, window_hours, now) < limit


def record_deactivation(account, now=None):
    """Stage a log row for `account`. Committed with the status change."""
    entry = HostingDeactivation(
        user_id=account.user_id,
        account_id=account.id,
        created_at=now or datetime.now(timezone.utc),
    )
    db.session.add(entry)
    return entry


def next_available_at(window_hours=12, now=None):
    """Earliest time a rate-limited owner should retry (shown to the user)."""
    now = now or datetime.now(timezone.utc)
    return now + timedelta(hours=window_hours)
