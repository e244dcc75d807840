"""Utilities for time and duty-period normalization."""
import re
from typing import Any, Optional, Tuple

NULL_SENTINELS = {"", "null", "none", "???", "n/a", "na", "-"}

REST_DAY_LABEL = "DESCANSO"
DEFAULT_LEAVE_REASON = "Incapacidad"

MERIDIEM = r"(am|pm|a\.?\s*m\.?|p\.?\s*m\.?)"
TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})(?::\d{2})?\s*" + MERIDIEM + "?", re.IGNORECASE)
RANGE_PATTERN = re.compile(
    r"(\d{1,2}):(\d{2})\s*" + MERIDIEM + r"?\s*[-–—]\s*(\d{1,2}):(\d{2})\s*" + MERIDIEM + "?",
    re.IGNORECASE,
)


def is_null_sentinel(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip().lower() in NULL_SENTINELS


def _apply_meridiem(hour: int, marker: Optional[str]) -> int:
    if not marker:
        return hour
    marker = marker.lower()
    if marker.startswith("p") and hour < 12:
        return hour + 12
    if marker.startswith("a") and hour == 12:
        return 0
    return hour


def _format_clock(hour: int, minute: int) -> Optional[str]:
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return f"{hour:02d}:{minute:02d}"


def normalize_time(value: Any) -> Optional[str]:
    """Normalize 12h/24h time strings ("5:18 PM", "07:00", "6:00 a. m.") to HH:MM."""
    if is_null_sentinel(value):
        return None

    match = TIME_PATTERN.search(str(value).strip())
    if not match:
        return None

    hour = _apply_meridiem(int(match.group(1)), match.group(3))
    return _format_clock(hour, int(match.group(2)))


def _parse_range(value: Any) -> Optional[Tuple[int, int, int, int]]:
    if is_null_sentinel(value):
        return None
    match = RANGE_PATTERN.search(str(value).strip())
    if not match:
        return None

    start_marker = match.group(3)
    end_marker = match.group(6)
    start_hour = _apply_meridiem(int(match.group(1)), start_marker)
    end_hour = _apply_meridiem(int(match.group(4)), end_marker)

    # Unmarked lunch ranges never fall at night: "1:00" means 13:00.
    if not start_marker and not end_marker:
        if 1 <= start_hour <= 6:
            start_hour += 12
        if 1 <= end_hour <= 6:
            end_hour += 12

    return start_hour, int(match.group(2)), end_hour, int(match.group(5))


def normalize_lunch_range(value: Any) -> Optional[str]:
    """Normalize a lunch range ("12:00 - 1:00") to "HH:MM-HH:MM" in 24h."""
    parsed = _parse_range(value)
    if not parsed:
        return None
    start_hour, start_minute, end_hour, end_minute = parsed
    start = _format_clock(start_hour, start_minute)
    end = _format_clock(end_hour, end_minute)
    if not start or not end:
        return None
    return f"{start}-{end}"


def compute_duration_label(value: Any) -> str:
    """Return the lunch duration suffix used in duty summaries, e.g. "1h" or "0.5h"."""
    # Unparseable lunch values keep the standard one-hour break label.
    parsed = _parse_range(value)
    if not parsed:
        return "1h"
    start_hour, start_minute, end_hour, end_minute = parsed
    minutes = abs((end_hour * 60 + end_minute) - (start_hour * 60 + start_minute))
    return f"{minutes / 60:g}h"


def build_duty_summary(record: Any) -> str:
    """Render the human-readable duty label for a normalized shift record."""
    if record.is_rest_day:
        return REST_DAY_LABEL
    if record.is_leave:
        return (record.leave_reason or DEFAULT_LEAVE_REASON).upper()
    if not record.start_time or not record.end_time:
        return ""

    summary = f"{record.start_time}-{record.end_time}"
    if record.is_split_shift:
        if record.split_start_time_2 and record.split_end_time_2:
            summary += f" // {record.split_start_time_2}-{record.split_end_time_2}"
        return summary

    if record.lunch_break:
        summary += f" D {compute_duration_label(record.lunch_break)}"
    return summary
