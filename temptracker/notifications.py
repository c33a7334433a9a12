from __future__ import annotations

import time
from typing import Callable, Optional

from temptracker.config import NOTIFICATION_TIMEOUT_S


class Notifier:
    """
    Single error slot for the UI.

    A new message overwrites the previous one. A message disappears after
    `timeout` seconds or when dismissed.
    """

    def __init__(self, timeout: float = NOTIFICATION_TIMEOUT_S, clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self._clock = clock
        self._message: Optional[str] = None
        self._posted_at = 0.0

    def push(self, message: str) -> None:
        self._message = message
        self._posted_at = self._clock()

    def current(self) -> Optional[str]:
        if self._message is None:
            return None
        if self._clock() - self._posted_at >= self.timeout:
            self._message = None
        return self._message

    def dismiss(self) -> None:
        self._message = None
