"""
Headless application shell.

Wires settings, database, session cache and services together and runs the
Qt event loop that drives the stopwatch tick. A UI attaches to the service
signals; without one the app logs the timer state.
"""

import asyncio
import logging
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QTimer

from timekeeping.domain.duration import format_elapsed
from timekeeping.domain.models import TimeEntry, UserProfile
from timekeeping.infra.config import get_settings
from timekeeping.infra.db import get_engine, init_db
from timekeeping.infra.logging_setup import configure_logging
from timekeeping.infra.repository import ProfileRepository
from timekeeping.infra.session_cache import LocalSessionCache
from timekeeping.services import CommitService, EntryService, TimerService

logger = logging.getLogger(__name__)


class TimekeepingApp:
    """
    Main application class: owns the event loops and the services.

    Follows Clean Architecture: shells delegate to Services, Services use Repositories.
    """

    def __init__(self, argv: Optional[List[str]] = None):
        self.app = QCoreApplication(argv if argv is not None else sys.argv)

        # Settings
        self.settings = get_settings()
        self.prefs = self.settings.preferences
        configure_logging(self.prefs.log_level)

        # Event loop for async operations
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        get_engine(self.settings.get_db_url())
        self.profile_repo = ProfileRepository()
        self.cache = LocalSessionCache(self.settings.get_session_cache_path())

        # Services are created once the user is known (_async_init)
        self.timer: Optional[TimerService] = None
        self.entry_service = EntryService(preferences=self.prefs)
        self.user: Optional[UserProfile] = None

        # Ctrl+C: Python signal handlers only run while the interpreter has
        # control, so wake it up regularly
        signal.signal(signal.SIGINT, lambda *_: self.quit())
        self._signal_pump = QTimer()
        self._signal_pump.timeout.connect(lambda: None)
        self._signal_pump.start(250)

        QTimer.singleShot(0, self._async_init)

    def _async_init(self):
        """Async initialization tasks"""
        try:
            self.loop.run_until_complete(init_db(self.settings.get_db_url()))
            self.user = self.loop.run_until_complete(self._load_user())

            commit_service = CommitService(preferences=self.prefs)
            self.timer = TimerService(
                self.cache, self.user.id,
                commit_service=commit_service,
                preferences=self.prefs
            )
            self._connect_signals()

            session = self.timer.restore()
            logger.info(f"Timer state on start-up: {session.state.value}")

            # Self-healing pass over the stored entries
            entries = self.loop.run_until_complete(self.entry_service.load_entries(self.user.id))
            logger.info(f"Loaded {len(entries)} time entries for {self.user.full_name}")
        except Exception:
            logger.exception("Start-up failed")
            self.app.exit(1)

    async def _load_user(self) -> UserProfile:
        """The configured user, or the first profile, created if none exists"""
        if self.prefs.default_user_id is not None:
            user = await self.profile_repo.get_by_id(self.prefs.default_user_id)
            if user is not None:
                return user
        profiles = await self.profile_repo.get_all()
        if profiles:
            return profiles[0]
        return await self.profile_repo.create(UserProfile(full_name=self.prefs.default_user_name))

    def _connect_signals(self):
        """Connect service signals to log handlers"""
        self.timer.tick.connect(self._on_tick)
        self.timer.session_started.connect(lambda s: logger.info("Session started"))
        self.timer.session_stopped.connect(self._on_session_stopped)
        self.timer.commit_failed.connect(lambda msg: logger.error(f"Timer not saved: {msg}"))

    def _on_tick(self, time_str: str, elapsed: int):
        if elapsed % 60 == 0:
            logger.info(f"Tracking {time_str}")

    def _on_session_stopped(self, entry: TimeEntry):
        logger.info(f"Saved {format_elapsed(round(entry.duration * 60))} on {entry.date}")
        # Emitted from inside stop(), i.e. while the loop runs; reload afterwards
        QTimer.singleShot(0, self._reload_entries)

    def _reload_entries(self):
        """Entries changed, so run the self-healing pass again"""
        self.loop.run_until_complete(self.entry_service.load_entries(self.user.id))

    def quit(self):
        """Quit the application. A running session stays in the cache."""
        if self.timer is not None and self.timer.should_warn_on_unload():
            logger.warning(
                f"Quitting with {format_elapsed(self.timer.session.elapsed_seconds)} "
                f"uncommitted; the session resumes on next start"
            )
        self._signal_pump.stop()
        self.loop.run_until_complete(get_engine().dispose())
        self.loop.close()
        self.app.quit()

    def run(self) -> int:
        """Run the application"""
        return self.app.exec()
