"""
Background polling worker.

Runs in its own daemon thread so callers stay responsive. Each tick asks the
monitor to check every enabled target whose check interval has elapsed; the
fetches themselves run on the fetcher's worker pool, so a tick never waits on
the network.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from .github_client import FetchHandle
from .monitor import StatusMonitor

logger = logging.getLogger(__name__)


class StatusPoller:
    def __init__(
        self,
        monitor: StatusMonitor,
        tick_seconds: float = 1.0,
        on_tick: Optional[Callable[[Dict[str, FetchHandle]], None]] = None,
    ) -> None:
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be greater than 0")
        self.monitor = monitor
        self.tick_seconds = tick_seconds
        self.on_tick = on_tick
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name="hublights-poller", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def run_once(self) -> Dict[str, FetchHandle]:
        """Start checks for every due target and report them to ``on_tick``."""
        started = self.monitor.check_due()
        if started:
            logger.debug("Poll tick started checks", extra={"count": len(started)})
        if self.on_tick is not None:
            self.on_tick(started)
        return started

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.tick_seconds)
