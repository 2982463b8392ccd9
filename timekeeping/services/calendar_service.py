"""
Calendar Service - decides which calendar day an entry belongs to.

An entry is always bucketed under the day it started, even if it ran past
midnight. Whether it crossed midnight is reported separately, for a
"+1 day" badge; it never moves the entry to another bucket.
"""

import datetime
from typing import Optional, Tuple, Union

from timekeeping.domain.errors import ValidationError
from timekeeping.domain.models import DayBucket

DATE_FORMAT = "%Y-%m-%d"


def calendar_date_of(moment: datetime.datetime) -> str:
    """Local calendar day of a timestamp as YYYY-MM-DD"""
    return moment.strftime(DATE_FORMAT)


class CalendarService:
    """
    Cross-day normalization and time-range validation.

    Timestamps are naive local datetimes, like everywhere else in the app.
    """

    @staticmethod
    def normalize(start_time: datetime.datetime, end_time: datetime.datetime) -> DayBucket:
        """
        Resolve the date bucket of an entry.

        Args:
            start_time: Start of the entry
            end_time: End of the entry

        Returns:
            DayBucket with the start day and whether the end lies on another day
        """
        start_day = calendar_date_of(start_time)
        return DayBucket(
            date=start_day,
            crosses_day=start_day != calendar_date_of(end_time)
        )

    @staticmethod
    def validate_range(start_time: datetime.datetime, end_time: datetime.datetime) -> None:
        """Reject empty and inverted ranges"""
        if end_time <= start_time:
            raise ValidationError(
                f"End time {end_time:%Y-%m-%d %H:%M} must be after start time {start_time:%Y-%m-%d %H:%M}"
            )

    @classmethod
    def resolve_manual_range(cls, day: Union[datetime.date, str],
                             start_clock: Union[datetime.time, str],
                             end_clock: Union[datetime.time, str],
                             end_day: Optional[Union[datetime.date, str]] = None
                             ) -> Tuple[datetime.datetime, datetime.datetime]:
        """
        Build the start/end timestamps of a manual entry form.

        The end defaults to the same day as the start. An explicit end_day
        allows entries that run past midnight.

        Raises:
            ValidationError: unparseable input or end not after start
        """
        start_date = cls._parse_date(day)
        end_date = cls._parse_date(end_day) if end_day is not None else start_date

        start_time = datetime.datetime.combine(start_date, cls._parse_clock(start_clock))
        end_time = datetime.datetime.combine(end_date, cls._parse_clock(end_clock))
        cls.validate_range(start_time, end_time)
        return start_time, end_time

    @staticmethod
    def _parse_date(value: Union[datetime.date, str]) -> datetime.date:
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        try:
            return datetime.datetime.strptime(value, DATE_FORMAT).date()
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid date: {value!r}") from e

    @staticmethod
    def _parse_clock(value: Union[datetime.time, str]) -> datetime.time:
        if isinstance(value, datetime.time):
            return value
        for fmt in ("%H:%M", "%H:%M:%S"):
            try:
                return datetime.datetime.strptime(value, fmt).time()
            except (TypeError, ValueError):
                continue
        raise ValidationError(f"Invalid time of day: {value!r}")
