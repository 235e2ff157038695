from datetime import date, datetime, time

MINUTES_PER_DAY = 24 * 60


def to_minutes(t: time) -> int:
    """Convert time to minutes since midnight."""
    return t.hour * 60 + t.minute


def shift_window(start: time, end: time) -> tuple[int, int]:
    """
    Half-open [start, end) window in minutes from midnight of the shift date.
    An end earlier than the start runs past midnight.
    """
    start_m, end_m = to_minutes(start), to_minutes(end)
    if end_m <= start_m:
        end_m += MINUTES_PER_DAY
    return start_m, end_m


def validate_time_range(start: time, end: time) -> None:
    if to_minutes(start) == to_minutes(end):
        raise ValueError("end_time must differ from start_time")


def overlaps(a_start_m: int, a_end_m: int, b_start_m: int, b_end_m: int) -> bool:
    """Check if two half-open time ranges overlap; touching ends do not."""
    return a_start_m < b_end_m and b_start_m < a_end_m


def duration_hours(start: time, end: time) -> float:
    start_m, end_m = shift_window(start, end)
    return (end_m - start_m) / 60.0


def validate_date_range(start: date | None, end: date | None) -> None:
    if start and end and end < start:
        raise ValueError("end date must be >= start date")


def cutoff_at(leave_date: date, cutoff: time, tz) -> datetime:
    """Wall-clock cutoff on the leave date itself (not the day before)."""
    return datetime.combine(leave_date, cutoff, tzinfo=tz)
