"""Single-owner facade over the configuration set, status cache, and fetcher.

Everything the presentation layer does goes through :class:`StatusMonitor`:
reads (``list_targets``/``get_target``/``get_status``), edits
(``add_target``/``remove_targets``/``move_targets``/``update_target``) and
check intents (``check_now``/``check_all``/``check_due``). All state changes,
including fetch completions arriving on worker threads, are serialized by one
re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Set

from .config_set import ConfigurationSet
from .errors import DecodeError
from .github_client import FetchHandle, StatusFetcher
from .models import (
    Decoded,
    DecodeFailed,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    StatusResult,
    TargetConfiguration,
    is_fetchable,
)
from .persistence import KeyValueStore, MemoryStore, load_configuration_set, save_configuration_set
from .status_store import StatusStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[], None]


class StatusMonitor:
    """Owns the monitored targets and their latest check-suite results."""

    def __init__(
        self,
        fetcher: StatusFetcher,
        storage: Optional[KeyValueStore] = None,
        config_set: Optional[ConfigurationSet] = None,
        status_store: Optional[StatusStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.RLock()
        self._fetcher = fetcher
        self._storage: KeyValueStore = storage if storage is not None else MemoryStore()
        self._configs = config_set if config_set is not None else ConfigurationSet()
        self._results = status_store if status_store is not None else StatusStore()
        self._clock = clock
        self._in_flight: Dict[str, Set[FetchHandle]] = {}
        self._last_issued: Dict[str, float] = {}
        self._subscribers: List[Subscriber] = []

    # -------- Change notification --------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` to run after every change; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback()
            except Exception:
                logger.exception("Status subscriber failed")

    # -------- Persistence --------

    def load(self) -> None:
        """Replace the in-memory targets with the persisted ones (empty when none decode)."""
        with self._lock:
            self._configs = load_configuration_set(self._storage)
        logger.debug("Loaded configuration set", extra={"count": len(self._configs)})
        self._notify()

    def save(self) -> None:
        with self._lock:
            save_configuration_set(self._storage, self._configs)

    # -------- Reads --------

    def list_targets(self) -> List[TargetConfiguration]:
        with self._lock:
            return self._configs.targets()

    def get_target(self, target_id: str) -> TargetConfiguration:
        """Return the target with ``target_id``, or a default target when unknown."""
        with self._lock:
            return self._configs.get(target_id)

    def has_target(self, target_id: str) -> bool:
        with self._lock:
            return target_id in self._configs

    def get_status(self, target_id: str) -> Optional[StatusResult]:
        """Return the latest result for ``target_id``; ``None`` for no data or unknown ids."""
        with self._lock:
            if target_id not in self._configs:
                return None
            return self._results.read_status(target_id)

    def read_raw(self, target_id: str) -> Optional[bytes]:
        with self._lock:
            if target_id not in self._configs:
                return None
            return self._results.read(target_id)

    def is_checking(self, target_id: str) -> bool:
        with self._lock:
            return bool(self._in_flight.get(target_id))

    # -------- Edits --------

    def add_target(self, target: Optional[TargetConfiguration] = None) -> TargetConfiguration:
        """Append ``target`` (or a fresh placeholder target) and return it."""
        target = target if target is not None else TargetConfiguration.new()
        with self._lock:
            self._configs.add(target)
        self._notify()
        return target

    def remove_targets(self, target_ids: Iterable[str]) -> List[str]:
        """Remove targets, cancelling their in-flight checks and dropping cached results."""
        with self._lock:
            removed = self._configs.remove(target_ids)
            for target_id in removed:
                for handle in self._in_flight.pop(target_id, set()):
                    handle.cancel()
                self._last_issued.pop(target_id, None)
                self._results.discard(target_id)
        if removed:
            self._notify()
        return removed

    def move_targets(self, offsets: Iterable[int], destination: int) -> None:
        with self._lock:
            self._configs.move(offsets, destination)
        self._notify()

    def update_target(self, target_id: str, target: TargetConfiguration) -> bool:
        """Replace the target stored at ``target_id``; unknown ids are left alone.

        Raises:
            ValueError: If ``target.id`` differs from a known ``target_id``.
        """
        with self._lock:
            replaced = self._configs.update(target_id, target)
        if replaced:
            self._notify()
        return replaced

    # -------- Checks --------

    def check_now(self, target_id: str) -> Optional[FetchHandle]:
        """Start a status fetch for one target.

        Returns ``None`` (and logs) when the target is unknown or has no
        organization configured.
        """
        with self._lock:
            if target_id not in self._configs:
                logger.warning("Ignoring check for unknown target", extra={"target_id": target_id})
                return None

            target = self._configs.get(target_id)
            if not is_fetchable(target):
                logger.warning("Target is not fetchable", extra={"target_id": target_id})
                return None

            self._results.start_check(target_id)
            self._last_issued[target_id] = self._clock()
            handle = self._fetcher.fetch(target, callback=self._on_fetch_complete)
            if not handle.done():
                self._in_flight.setdefault(target_id, set()).add(handle)

        self._notify()
        return handle

    def check_all(self) -> Dict[str, FetchHandle]:
        """Start one independent fetch per enabled, fetchable target."""
        handles: Dict[str, FetchHandle] = {}
        for target in self.list_targets():
            if not (target.enabled_defaulted and is_fetchable(target)):
                continue
            handle = self.check_now(target.id)
            if handle is not None:
                handles[target.id] = handle
        return handles

    def check_due(self, now: Optional[float] = None) -> Dict[str, FetchHandle]:
        """Check every enabled target whose interval has elapsed since its last check."""
        now = self._clock() if now is None else now
        with self._lock:
            due = [
                target.id
                for target in self._configs
                if target.enabled_defaulted
                and is_fetchable(target)
                and not self._in_flight.get(target.id)
                and (
                    target.id not in self._last_issued
                    or now - self._last_issued[target.id] >= target.check_interval_defaulted
                )
            ]

        handles: Dict[str, FetchHandle] = {}
        for target_id in due:
            handle = self.check_now(target_id)
            if handle is not None:
                handles[target_id] = handle
        return handles

    def cancel_check(self, target_id: str) -> int:
        """Cancel in-flight checks for ``target_id``; returns how many were cancelled."""
        with self._lock:
            handles = self._in_flight.pop(target_id, set())
            return sum(1 for handle in handles if handle.cancel())

    def close(self) -> None:
        with self._lock:
            handles = [handle for pending in self._in_flight.values() for handle in pending]
            self._in_flight.clear()
        for handle in handles:
            handle.cancel()
        self._fetcher.close()

    def _on_fetch_complete(self, handle: FetchHandle, outcome: FetchOutcome) -> None:
        target_id = handle.target_id
        with self._lock:
            self._in_flight.get(target_id, set()).discard(handle)

            if target_id not in self._configs:
                logger.debug("Dropping result for removed target", extra={"target_id": target_id})
                return

            if isinstance(outcome, FetchSuccess):
                self._results.complete_check(target_id, outcome.metadata.body, Decoded(outcome.report))
                if outcome.report.check_suites:
                    target = self._configs.get(target_id)
                    target.status = outcome.report.check_suites[0]
                    self._configs.update(target_id, target)
            elif isinstance(outcome, FetchFailure):
                error = outcome.error
                if isinstance(error, DecodeError) and error.body is not None:
                    # keep the undecodable body readable alongside the failure
                    self._results.complete_check(target_id, error.body, DecodeFailed(error))
                else:
                    self._results.fail_check(target_id, error)

            logger.debug(
                "Status check finished",
                extra={"target_id": target_id, "ok": isinstance(outcome, FetchSuccess)},
            )

        self._notify()
