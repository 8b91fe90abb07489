"""Small display helpers shared by the aggregation layer and the templates."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_epoch_millis(millis: int) -> datetime:
    try:
        return datetime.fromtimestamp(millis // 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return datetime.fromtimestamp(0, tz=timezone.utc)


def format_date_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return as_utc(value).strftime("%Y-%m-%d %H:%M:%S")


def format_date_relative(value: datetime, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    seconds = int((now - as_utc(value)).total_seconds())
    if seconds < 60:
        return "just now"
    days, rest = divmod(seconds, 86400)
    hours = rest // 3600
    minutes = rest // 60
    if days > 0:
        return f"{days} days ago"
    if hours > 0:
        return f"{hours} hours ago"
    if minutes > 0:
        return f"{minutes} minutes ago"
    return "just now"


def discord_avatar_url(discord_id: str, avatar_hash: str) -> str:
    return f"https://cdn.discordapp.com/avatars/{discord_id}/{avatar_hash}.png"


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.2f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.2f} MB"
    return f"{size / 1024 ** 3:.2f} GB"


def format_rate(rate: float, digits: int = 0) -> str:
    """Format a win rate percentage with ``digits`` decimals."""
    return f"{rate:.{digits}f}"
