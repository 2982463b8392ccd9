"""Services layer - Business logic"""

from .calendar_service import CalendarService
from .commit_service import CommitService
from .entry_service import EntryService
from .reconciliation_service import ReconciliationReport, ReconciliationService
from .report_service import ReportService
from .timer_service import TimerService

__all__ = [
    "CalendarService", "CommitService", "EntryService", "ReconciliationReport",
    "ReconciliationService", "ReportService", "TimerService",
]
