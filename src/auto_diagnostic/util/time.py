from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError

INPUT_FORMAT = "%Y-%m-%d %H:%M:%S"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def utc_now_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def parse_time_zone(name: Optional[str]) -> tzinfo:
    """
    Resolve an IANA time zone name. None or empty means UTC.
    """
    if not name or not name.strip():
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown time zone: {name}") from e


def parse_local_datetime(value: str, tz: tzinfo) -> int:
    """
    Parse a 'Y-m-d H:M:S' wall-clock string in tz and return epoch millis.
    """
    try:
        naive = datetime.strptime(value.strip(), INPUT_FORMAT)
    except ValueError as e:
        raise ConfigError(f"Invalid date time '{value}', expected format {INPUT_FORMAT}") from e
    return to_millis(naive.replace(tzinfo=tz))


def to_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def format_local(value: Union[datetime, int, float], tz: tzinfo) -> str:
    """
    Render an instant as 'YYYY-MM-DD HH:MM:SS TZ' in the display time zone.
    Naive datetimes are taken as UTC, numbers as epoch millis.
    """
    if isinstance(value, (int, float)):
        dt = from_millis(int(value))
    elif value.tzinfo is None:
        dt = value.replace(tzinfo=timezone.utc)
    else:
        dt = value
    return dt.astimezone(tz).strftime(DISPLAY_FORMAT)
