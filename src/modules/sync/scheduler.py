"""Interval polling with an injected clock and visibility signal.

``PollingScheduler`` holds no timer of its own: ``tick()`` fetches when
a poll is due, so tests drive it with a fake clock and ``run()`` drives
it from a background thread in real use.

- Polls only while started and visible.
- Becoming visible fetches immediately and restarts the interval.
- Going to the background pauses polling.
- ``stop()`` cancels future polls; a fetch already running completes.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

import structlog

from modules.sync import conf

logger = structlog.get_logger(__name__)


class PollingScheduler:
    def __init__(
        self,
        fetch: Callable[[], Any],
        interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        visible: bool = True,
    ) -> None:
        self.interval = conf.SYNC_POLL_INTERVAL_SECONDS if interval is None else interval
        if self.interval <= 0:
            raise ValueError("Polling interval must be positive.")
        self._fetch = fetch
        self._clock = clock
        self._visible = visible
        self._running = False
        self._next_due: Optional[float] = None
        self._lock = threading.Lock()
        self.poll_count = 0
        self.last_error: Optional[BaseException] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_visible(self) -> bool:
        return self._visible

    @property
    def next_due(self) -> Optional[float]:
        return self._next_due

    def start(self) -> None:
        """Start polling; a visible scheduler fetches right away."""
        with self._lock:
            if self._running:
                return
            self._running = True
            poll_now = self._visible
        logger.debug("sync.scheduler_started", interval=self.interval)
        if poll_now:
            self._poll()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._next_due = None
        logger.debug("sync.scheduler_stopped", polls=self.poll_count)

    def set_visible(self, visible: bool) -> None:
        with self._lock:
            was_visible = self._visible
            self._visible = visible
            if not visible:
                self._next_due = None
            poll_now = visible and not was_visible and self._running
        if poll_now:
            self._poll()

    def tick(self) -> bool:
        """Fetch if a poll is due; return whether a fetch ran."""
        with self._lock:
            due = (
                self._running
                and self._visible
                and (self._next_due is None or self._clock() >= self._next_due)
            )
        if due:
            self._poll()
        return due

    def run(self, stop_event: threading.Event) -> None:
        """Drive ``tick()`` until *stop_event* is set, then stop."""
        self.start()
        while not stop_event.is_set():
            self.tick()
            next_due = self._next_due
            wait = self.interval if next_due is None else max(next_due - self._clock(), 0.0)
            stop_event.wait(min(wait, self.interval))
        self.stop()

    def _poll(self) -> None:
        with self._lock:
            self._next_due = self._clock() + self.interval
        self.poll_count += 1
        try:
            self._fetch()
        except Exception as exc:
            self.last_error = exc
            logger.warning("sync.poll_failed", error=str(exc), exc_info=True)
        else:
            self.last_error = None
