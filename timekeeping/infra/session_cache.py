"""
Local Session Cache - one JSON slot holding the current timer session.

The slot is always overwritten as a whole: the new content is written to a
sibling temp file and moved into place, so a crash mid-write leaves either
the old session or the new one, never a mix.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import pydantic

from timekeeping.domain.errors import CacheCorruptionError
from timekeeping.domain.models import TimerSession

logger = logging.getLogger(__name__)


class LocalSessionCache:
    """
    Durable key/value slot for the TimerSession of this device.

    Missing or unreadable content is treated as "no session".
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_session(self) -> Optional[TimerSession]:
        """Return the cached session, or None on first run or corrupt content"""
        if not self.path.exists():
            return None

        try:
            raw = self.path.read_bytes()
            return self._parse(raw)
        except CacheCorruptionError as e:
            logger.warning(f"Ignoring corrupt session cache {self.path}: {e}")
            return None
        except OSError as e:
            logger.warning(f"Could not read session cache {self.path}: {e}")
            return None

    def write_session(self, session: TimerSession) -> None:
        """Replace the cached session"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(session.model_dump_json(indent=2))
        os.replace(tmp_path, self.path)

    def clear_session(self) -> None:
        """Remove the slot (sign-out)"""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    @staticmethod
    def _parse(raw: bytes) -> TimerSession:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CacheCorruptionError(f"not UTF-8 text: {e}") from e
        if not text.strip():
            raise CacheCorruptionError("empty file")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CacheCorruptionError(f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CacheCorruptionError(f"expected an object, got {type(data).__name__}")
        try:
            return TimerSession.model_validate(data)
        except pydantic.ValidationError as e:
            raise CacheCorruptionError(f"invalid session: {e.error_count()} error(s)") from e
