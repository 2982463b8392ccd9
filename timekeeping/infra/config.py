"""
Configuration management using Pydantic Settings.

Architecture Decision: Why pydantic-settings?
- Type-safe configuration with validation
- Supports multiple sources (YAML, env vars, defaults)
- Easy to test with different configurations
"""

import os
from pathlib import Path
from typing import Optional
import yaml

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackerPreferences(BaseModel):
    """
    Tunables of the timer core.

    This allows users to customize behavior without touching code.
    """

    # Stopwatch
    tick_interval_ms: int = Field(default=1000, ge=100, description="Tick period of the stopwatch")
    recompute_elapsed_on_restore: bool = Field(
        default=False,
        description="On restart, add the time the app was closed to a running session"
    )
    default_timer_description: str = "Timer session"
    default_manual_description: str = "Manual entry"

    # Commit / reconciliation
    reconcile_epsilon_seconds: float = Field(
        default=0.1, gt=0,
        description="Stored durations further off than this are rewritten"
    )
    duplicate_tolerance_seconds: float = Field(
        default=1.0, ge=0,
        description="Window used to match an existing entry by start time on stop"
    )
    reconcile_concurrency: int = Field(default=4, ge=1, description="Parallel reconciliation writes")

    # Identity of the local user (authentication lives outside the core)
    default_user_id: Optional[int] = None
    default_user_name: str = "Local user"

    log_level: str = Field(default="INFO", description="Root log level")

    @property
    def reconcile_epsilon_minutes(self) -> float:
        return self.reconcile_epsilon_seconds / 60


class Settings(BaseSettings):
    """
    Application settings with multiple sources:
    1. Default values (hardcoded)
    2. YAML config file
    3. Environment variables (highest priority)
    """
    model_config = SettingsConfigDict(
        env_prefix='TIMEKEEPING_',
        env_file='.env',
        env_file_encoding='utf-8'
    )

    # Application paths
    app_name: str = "Timekeeping"
    config_dir: Optional[Path] = None
    data_dir: Optional[Path] = None

    # Database
    database_url: Optional[str] = None

    # Local session cache file; defaults to <data_dir>/timer_session.json
    session_cache_path: Optional[Path] = None

    # Tracker preferences
    preferences: TrackerPreferences = TrackerPreferences()

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._init_paths()
        self._load_yaml_config()

    def _init_paths(self):
        """Initialize default paths based on OS"""
        if self.config_dir is None:
            if os.name == 'nt':  # Windows
                base = Path(os.getenv('APPDATA'))
            else:  # Linux/Mac
                base = Path.home() / '.config'
            self.config_dir = base / self.app_name.lower()

        if self.data_dir is None:
            if os.name == 'nt':  # Windows
                base = Path(os.getenv('APPDATA'))
            else:  # Linux/Mac
                base = Path.home() / '.local' / 'share'
            self.data_dir = base / self.app_name.lower()

        # Create directories if they don't exist
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _load_yaml_config(self):
        """Load preferences from YAML file"""
        # First check in workspace config folder
        config_file = Path("config/settings.yaml")
        if not config_file.exists():
            # Then check in user's config directory
            config_file = self.config_dir / "settings.yaml"

        if config_file.exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
                if config_data:
                    # Update preferences with YAML data
                    self.preferences = TrackerPreferences(**config_data)

    def save_preferences(self):
        """Save current preferences to YAML file"""
        config_file = self.config_dir / "settings.yaml"
        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(self.preferences.model_dump(), f, default_flow_style=False)

    def get_db_url(self) -> str:
        """Get database URL, creating default if not set"""
        if self.database_url:
            return self.database_url

        db_path = self.data_dir / 'timekeeping.db'
        return f"sqlite+aiosqlite:///{db_path}"

    def get_session_cache_path(self) -> Path:
        if self.session_cache_path:
            return self.session_cache_path
        return self.data_dir / 'timer_session.json'


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

