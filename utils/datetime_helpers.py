"""Timezone-aware date/time helpers for the resort's local clock."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from flask import current_app

DATE_FORMAT = '%Y-%m-%d'
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    tz_name = current_app.config.get('TIMEZONE', 'Europe/Minsk')
    return ZoneInfo(tz_name)


def get_today() -> date:
    """Get today's date in the configured timezone."""
    return datetime.now(get_timezone()).date()


def get_now() -> datetime:
    """Get current datetime in the configured timezone."""
    return datetime.now(get_timezone())


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD. Raises ValueError on anything else."""
    return datetime.strptime(value, DATE_FORMAT).date()


def time_to_minutes(value: str) -> int:
    """
    Convert 'HH:MM' to minutes since midnight.

    Raises:
        ValueError: If the string is not a valid 24-hour time
    """
    parsed = datetime.strptime(value, '%H:%M')
    return parsed.hour * 60 + parsed.minute


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to 'HH:MM'."""
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def minutes_of_day(moment: datetime) -> int:
    """Minutes since midnight of a datetime, seconds rounded up."""
    minutes = moment.hour * 60 + moment.minute
    if moment.second or moment.microsecond:
        minutes += 1
    return minutes


def format_timestamp(moment: datetime) -> str:
    """Local wall-clock timestamp as stored in the database."""
    return moment.strftime(TIMESTAMP_FORMAT)
