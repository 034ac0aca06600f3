"""
Credential refresh timer.

A single-slot timer: arming replaces whatever was pending, so at most one
refresh is ever scheduled per scheduler.
"""

import logging
import threading
from typing import Callable, Optional

from .output import OutputHandler

logger = logging.getLogger(__name__)


def format_duration(seconds: float) -> str:
    """
    Format a delay rounded to whole minutes, e.g. "1 hour, 30 minutes".

    Args:
        seconds: Duration in seconds

    Returns:
        Human readable duration in hours and minutes
    """
    total_minutes = int(round(max(seconds, 0) / 60))
    hours, minutes = divmod(total_minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes or not hours:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    return ", ".join(parts)


class RefreshScheduler:
    """
    Runs a callback once after a delay, cancellable.

    The callback runs on a daemon timer thread. A new arm() cancels the
    pending timer first.
    """

    def __init__(self, timer_factory: Callable[..., threading.Timer] = threading.Timer) -> None:
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

    @property
    def is_armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        """
        Schedule callback after delay_seconds, replacing any pending refresh.

        Args:
            delay_seconds: Delay before the callback runs
            callback: Function to run; its own errors are its responsibility
        """
        timer: Optional[threading.Timer] = None

        def fire() -> None:
            with self._lock:
                if self._timer is not timer:
                    return
                self._timer = None
            try:
                callback()
            finally:
                with self._lock:
                    if self._timer is None:
                        self._idle.set()

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(max(delay_seconds, 0), fire)
            timer.daemon = True
            self._timer = timer
            self._idle.clear()
            timer.start()
        logger.debug(f"Refresh armed in {delay_seconds:.0f}s")

    def cancel(self) -> bool:
        """
        Cancel the pending refresh without notifying the user.

        Returns:
            True if a refresh was pending
        """
        with self._lock:
            timer = self._timer
            self._timer = None
            if timer is None:
                return False
            timer.cancel()
            self._idle.set()
        logger.debug("Refresh cancelled")
        return True

    def stop(self) -> bool:
        """
        Cancel the pending refresh and report it. A no-op when nothing is armed.

        Returns:
            True if a refresh was cancelled
        """
        cancelled = self.cancel()
        if cancelled:
            OutputHandler.info("AWS Role Auto-Refresh Cancelled")
        return cancelled

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no refresh is pending or running.

        Returns:
            True if the scheduler went idle, False on timeout
        """
        return self._idle.wait(timeout)
