"""Typing-indicator debounce.

Every keystroke sends ``True`` right away and restarts a stop timer. When the
timer runs out without another keystroke, ``False`` is sent once. Sending a
message stops typing immediately.

The timer runs on an injectable clock so the delay can be driven by hand in
tests; ``AsyncioClock`` is the production clock.
"""
import asyncio
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

# Quiet period after the last keystroke before "stopped typing" is sent
DEFAULT_STOP_DELAY = 2.0


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Clock(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioClock:
    """Schedules callbacks on the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class CancelableTimer:
    """At most one pending callback; scheduling again replaces it."""

    def __init__(self, clock: Clock) -> None:
        self.clock = clock
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self.clock.call_later(delay, fire)

    def cancel(self) -> bool:
        """Cancel the pending callback.

        Returns:
            True if a callback was pending, False if this was a no-op.
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True


class TypingDebouncer:
    """Turns raw keystrokes into typing started/stopped signals.

    Args:
        send: Called with True/False to emit the typing state.
        clock: Clock driving the stop timer.
        delay: Seconds of inactivity before False is sent.
    """

    def __init__(
        self,
        send: Callable[[bool], None],
        clock: Clock,
        delay: float = DEFAULT_STOP_DELAY,
    ) -> None:
        self.send = send
        self.delay = delay
        self.timer = CancelableTimer(clock)

    def keystroke(self) -> None:
        # One True per keystroke, not deduplicated
        self.send(True)
        self.timer.schedule(self.delay, self._stop)

    def message_sent(self) -> None:
        self.timer.cancel()
        self.send(False)

    def cancel(self) -> None:
        """Drop the pending stop signal without sending anything."""
        self.timer.cancel()

    def _stop(self) -> None:
        logger.debug("Typing stopped after %.1fs of inactivity", self.delay)
        self.send(False)
