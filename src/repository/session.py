"""Per-run tracker state: mode, connectivity, active profile filter.

Replaces ambient globals with one explicit object shared by the
repositories. Single-actor use only; nothing here is locked.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from src.store.models import ALL

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def log_notifier(message: str) -> None:
    """Default notification channel: a WARNING log line."""
    logger.warning(message)


@dataclass
class TrackerSession:
    configured: bool
    online: bool = True
    active_profile: int | str = ALL
    notify: Notifier = log_notifier
    status_callbacks: list[Callable[[bool], None]] = field(default_factory=list)

    @property
    def use_remote(self) -> bool:
        return self.configured and self.online

    @property
    def active_profile_id(self) -> int | None:
        """Profile id new records are tagged with (None while showing all)."""
        return None if self.active_profile in (None, ALL) else int(self.active_profile)

    def set_online(self, online: bool) -> None:
        if online == self.online:
            return
        self.online = online
        logger.info("Connection status changed: %s", "online" if online else "offline")
        for callback in self.status_callbacks:
            try:
                callback(online)
            except Exception:
                logger.exception("Error in connection status callback")

    def warn(self, message: str) -> None:
        """Surface a non-fatal warning to the user without raising."""
        try:
            self.notify(message)
        except Exception:
            logger.exception("Notifier failed for: %s", message)


class LocalIdGenerator:
    """Monotonic wall-clock ids (ms) for local-only mode.

    Never returns an id at or below the last one issued, nor at or below
    the floor supplied by the caller (the largest id already stored).
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0

    def next_id(self, floor: int = 0) -> int:
        candidate = int(self._clock() * 1000)
        candidate = max(candidate, self._last + 1, floor + 1)
        self._last = candidate
        return candidate
