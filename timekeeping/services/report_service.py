"""
Report Service - groups time entries into calendar-day buckets.

Rendering (CSV, PDF) happens elsewhere; this only produces the grouped data
the listing and the exports are built from. Entries are grouped by their
stored date, which is the start day, so an entry running past midnight stays
under the day it started.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from timekeeping.domain.duration import format_elapsed, minutes_to_hours
from timekeeping.domain.models import TimeEntry
from timekeeping.services.calendar_service import CalendarService


@dataclass
class DayGroup:
    """All entries of one calendar day"""
    date: str
    entries: List[TimeEntry] = field(default_factory=list)

    @property
    def total_minutes(self) -> float:
        return sum(e.duration for e in self.entries)

    @property
    def total_hours(self) -> float:
        return minutes_to_hours(self.total_minutes)


class ReportService:
    """
    Builds the day-grouped view of a user's entries.
    """

    def group_by_date(self, entries: Iterable[TimeEntry],
                      filter_date: Optional[str] = None) -> List[DayGroup]:
        """
        Group entries by their date bucket.

        Args:
            entries: Entries in any order
            filter_date: Only return this day (YYYY-MM-DD); an empty group if
                nothing was tracked that day

        Returns:
            Groups ordered newest day first, entries newest first
        """
        groups: Dict[str, DayGroup] = {}
        for entry in entries:
            groups.setdefault(entry.date, DayGroup(entry.date)).entries.append(entry)

        for group in groups.values():
            group.entries.sort(key=lambda e: e.start_time, reverse=True)

        if filter_date:
            return [groups.get(filter_date, DayGroup(filter_date))]
        return [groups[d] for d in sorted(groups, reverse=True)]

    @staticmethod
    def crosses_day(entry: TimeEntry) -> bool:
        """Whether to show a "+1 day" badge next to the entry"""
        return CalendarService.normalize(entry.start_time, entry.end_time).crosses_day

    @staticmethod
    def format_duration(minutes: float) -> str:
        """Format fractional minutes as HH:MM:SS"""
        return format_elapsed(round(minutes * 60))

    def total_hours(self, entries: Iterable[TimeEntry]) -> float:
        return minutes_to_hours(sum(e.duration for e in entries))
