"""
Reconciliation Service - self-heals stored durations.

Durations are derived client-side when an entry is created or edited. Rounding,
an edit of start or end that skipped the recomputation, or a half-failed write
can leave the stored value out of step with the timestamps. start_time and
end_time are authoritative, so each pass recomputes the duration from them and
rewrites the entries that are off by more than the epsilon.

Running it again right after a pass writes nothing.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from timekeeping.domain.duration import durations_match, precise_duration_minutes
from timekeeping.domain.errors import TimeTrackingError
from timekeeping.domain.models import TimeEntry, TimeEntryUpdate
from timekeeping.infra.config import TrackerPreferences
from timekeeping.infra.repository import TimeEntryRepository

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    """Outcome of one reconciliation pass"""
    checked: int = 0
    corrected: List[TimeEntry] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    @property
    def writes(self) -> int:
        """Rows actually rewritten; failed attempts changed nothing"""
        return len(self.corrected)


class ReconciliationService:
    """
    Compares stored durations against start/end and fixes the drifted ones.

    Updates run concurrently, bounded by reconcile_concurrency. A failed
    update is logged and left for the next pass.
    """

    def __init__(self, entry_repo: Optional[TimeEntryRepository] = None,
                 preferences: Optional[TrackerPreferences] = None):
        self.entry_repo = entry_repo or TimeEntryRepository()
        self.preferences = preferences or TrackerPreferences()

    @property
    def epsilon(self) -> float:
        return self.preferences.reconcile_epsilon_minutes

    def find_drifted(self, entries: Iterable[TimeEntry], report: ReconciliationReport) -> List[tuple]:
        """Return (entry, calculated_minutes) for every entry that needs a rewrite"""
        drifted = []
        for entry in entries:
            report.checked += 1
            if entry.id is None or entry.end_time <= entry.start_time:
                # Not ours to fix: an inverted range needs a human
                report.skipped.append(entry.id)
                continue

            if not durations_match(entry.duration, entry.start_time, entry.end_time, self.epsilon):
                drifted.append((entry, precise_duration_minutes(entry.start_time, entry.end_time)))
        return drifted

    async def reconcile(self, entries: Iterable[TimeEntry]) -> ReconciliationReport:
        """
        Run one pass over the given entries.

        Args:
            entries: Entries as loaded from the record store

        Returns:
            Report listing corrected and failed entries
        """
        report = ReconciliationReport()
        drifted = self.find_drifted(entries, report)
        if not drifted:
            logger.debug(f"Reconciliation: {report.checked} entries checked, nothing to fix")
            return report

        semaphore = asyncio.Semaphore(self.preferences.reconcile_concurrency)

        async def _fix(entry: TimeEntry, calculated: float) -> TimeEntry:
            async with semaphore:
                logger.info(
                    f"Entry {entry.id}: stored {entry.duration:.4f} min, "
                    f"timestamps give {calculated:.4f} min, rewriting"
                )
                return await self.entry_repo.update(entry.id, TimeEntryUpdate(duration=calculated))

        results = await asyncio.gather(
            *(_fix(entry, calculated) for entry, calculated in drifted),
            return_exceptions=True
        )

        for (entry, _), result in zip(drifted, results):
            if isinstance(result, TimeTrackingError):
                logger.warning(f"Reconciliation of entry {entry.id} failed, retrying next pass: {result}")
                report.failed.append(entry.id)
            elif isinstance(result, Exception):
                logger.error(f"Unexpected error reconciling entry {entry.id}: {result!r}")
                report.failed.append(entry.id)
            elif isinstance(result, BaseException):
                raise result
            else:
                report.corrected.append(result)

        logger.info(
            f"Reconciliation: {report.checked} checked, {len(report.corrected)} corrected, "
            f"{len(report.failed)} failed"
        )
        return report
