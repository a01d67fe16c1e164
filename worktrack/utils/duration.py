"""Duration arithmetic for time sessions."""
from datetime import datetime, timedelta, timezone

ONE_MS = timedelta(milliseconds=1)


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    MongoDB hands back naive UTC datetimes, so everything stored or compared
    uses the same representation.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_ms(delta: timedelta) -> int:
    """Whole milliseconds in a timedelta (floored)."""
    return delta // ONE_MS


def compute_duration(
    start_time: datetime,
    end_time_or_now: datetime,
    paused_duration_ms: int,
) -> int:
    """
    Compute elapsed active time in milliseconds.

    Args:
        start_time: When the session started
        end_time_or_now: End time, or the current time for a live session
        paused_duration_ms: Accumulated paused milliseconds

    Returns:
        max(0, (end - start) - paused). Never negative, even when the
        paused total exceeds wall-clock time because of skew or bad data.

    Raises:
        ValueError: If paused_duration_ms is negative

    Examples:
        >>> start = datetime(2025, 1, 1, 9, 0)
        >>> compute_duration(start, start + timedelta(minutes=20), 5 * 60_000)
        900000
        >>> compute_duration(start, start, 1000)
        0
    """
    if paused_duration_ms < 0:
        raise ValueError("paused_duration_ms must be non-negative")

    elapsed = to_ms(end_time_or_now - start_time)
    return max(0, elapsed - paused_duration_ms)


def format_duration(duration_ms: int) -> str:
    """
    Render milliseconds as HH:MM:SS.

    Examples:
        >>> format_duration(3_723_000)
        '01:02:03'
        >>> format_duration(-5)
        '00:00:00'
    """
    seconds = max(0, duration_ms) // 1000
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
