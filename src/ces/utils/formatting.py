"""Formatting helpers for timestamps and durations."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def format_duration(start: datetime, end: Optional[datetime] = None) -> str:
    """Format the span between start and end (default: now) as '1h 2m 3s'."""
    end = end or utcnow()
    duration = max(int((end - start).total_seconds()), 0)

    hours = duration // 3600
    minutes = (duration % 3600) // 60
    seconds = duration % 60

    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    elif minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_datetime(dt: datetime) -> str:
    """Format datetime in local time as 'YYYY-MM-DD HH:MM:SS'."""
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def backup_timestamp(dt: Optional[datetime] = None) -> str:
    """ISO timestamp safe for use in a directory name."""
    stamp = (dt or utcnow()).isoformat(timespec="milliseconds")
    return stamp.replace(":", "-").replace(".", "-").replace("+00-00", "Z")
