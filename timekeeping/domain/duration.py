"""
Duration arithmetic shared by the commit path, manual edits and reconciliation.

Durations are kept in fractional minutes at full sub-second resolution.
"""

import datetime

# 0.1 s expressed in minutes
DURATION_EPSILON_MINUTES = 0.1 / 60


def precise_duration_minutes(start: datetime.datetime, end: datetime.datetime) -> float:
    """
    Elapsed time between two instants in minutes.

    No validation: a reversed range yields a negative value and the caller
    decides what to do with it.
    """
    return (end - start).total_seconds() / 60


def duration_delta(stored: float, start: datetime.datetime, end: datetime.datetime) -> float:
    """Absolute difference between a stored duration and the one implied by start/end"""
    return abs(precise_duration_minutes(start, end) - stored)


def durations_match(stored: float, start: datetime.datetime, end: datetime.datetime,
                    epsilon: float = DURATION_EPSILON_MINUTES) -> bool:
    return duration_delta(stored, start, end) <= epsilon


def format_elapsed(seconds: int) -> str:
    """Format seconds as HH:MM:SS"""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def minutes_to_hours(minutes: float) -> float:
    return minutes / 60
