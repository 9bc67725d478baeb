"""GitHub check-suites client with non-blocking, cancellable fetches."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional

import requests

from .config import Settings
from .decoding import decode_check_suite_report
from .errors import DecodeError, FetchError, HTTPStatusError, NotFetchableError, TransportError
from .models import (
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    TargetConfiguration,
    TransportMetadata,
)

logger = logging.getLogger(__name__)

FetchCallback = Callable[["FetchHandle", FetchOutcome], None]

_PENDING = "pending"
_CANCELLED = "cancelled"
_COMPLETED = "completed"


class FetchHandle:
    """Handle for one in-flight status fetch.

    The handle settles exactly once, either completed with an outcome or
    cancelled. Whichever of :meth:`cancel` and completion gets there first wins;
    the other becomes a no-op.

    A completed handle reports :meth:`done` and releases :meth:`result` only
    after the completion callback has returned, so a waiter always observes
    whatever the callback wrote.
    """

    def __init__(self, target_id: str, url: str) -> None:
        self.target_id = target_id
        self.url = url
        self._lock = threading.Lock()
        self._state = _PENDING
        self._outcome: Optional[FetchOutcome] = None
        self._settled = threading.Event()
        self._future: Optional[Future] = None

    def __repr__(self) -> str:
        return f"FetchHandle(target_id={self.target_id!r}, state={self._state!r})"

    def _attach(self, future: Future) -> None:
        self._future = future

    def _complete(self, outcome: FetchOutcome) -> bool:
        with self._lock:
            if self._state != _PENDING:
                return False
            self._state = _COMPLETED
            self._outcome = outcome
        return True

    def _settle(self) -> None:
        self._settled.set()

    def cancel(self) -> bool:
        """Cancel the fetch. Returns ``False`` if it had already settled."""
        with self._lock:
            if self._state != _PENDING:
                return False
            self._state = _CANCELLED
        if self._future is not None:
            self._future.cancel()
        self._settled.set()
        logger.debug("Cancelled status fetch", extra={"target_id": self.target_id})
        return True

    def cancelled(self) -> bool:
        return self._state == _CANCELLED

    def done(self) -> bool:
        return self._settled.is_set()

    def result(self, timeout: Optional[float] = None) -> FetchOutcome:
        """Block until the fetch settles and return its outcome.

        Raises:
            concurrent.futures.CancelledError: If the handle was cancelled.
            concurrent.futures.TimeoutError: If ``timeout`` elapses first.
        """
        if not self._settled.wait(timeout):
            raise FutureTimeoutError(f"Status fetch for '{self.target_id}' did not finish in time")
        if self._state == _CANCELLED or self._outcome is None:
            raise CancelledError(f"Status fetch for '{self.target_id}' was cancelled")
        return self._outcome


class StatusFetcher:
    """Issues check-suites requests on a worker pool and decodes the responses."""

    _ACCEPT = "application/vnd.github.v3+json"

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            settings: Validated runtime settings (API base URL, token, timeout).
            session: Optional preconfigured session; one is created otherwise.
            executor: Optional executor for request work; a thread pool sized by
                ``settings.max_workers`` is created otherwise.
        """
        self._settings = settings
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.max_workers, thread_name_prefix="hublights-fetch"
        )

        self._session = session or requests.Session()
        self._session.headers.update({"Accept": self._ACCEPT})
        if settings.token:
            self._session.headers["Authorization"] = f"token {settings.token}"

    def __enter__(self) -> "StatusFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Stop accepting work and release the HTTP session."""
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self._session.close()

    def service_url(self, target: TargetConfiguration) -> Optional[str]:
        return target.service_url(self._settings.api_url)

    def fetch(self, target: TargetConfiguration, callback: Optional[FetchCallback] = None) -> FetchHandle:
        """Start fetching ``target``'s check suites and return immediately.

        ``callback`` runs on a worker thread with the handle and outcome, once,
        unless the handle is cancelled before the request settles.

        Raises:
            NotFetchableError: If the target has no organization configured.
        """
        url = self.service_url(target)
        if url is None:
            raise NotFetchableError(f"Target '{target.id}' has no organization to query.")

        handle = FetchHandle(target.id, url)
        logger.debug("Starting status fetch", extra={"target_id": target.id, "url": url})
        handle._attach(self._executor.submit(self._run, handle, callback))
        return handle

    def _run(self, handle: FetchHandle, callback: Optional[FetchCallback]) -> None:
        if handle.cancelled():
            return

        try:
            outcome = self._perform(handle.url)
        except Exception as exc:
            logger.exception("Status fetch failed unexpectedly", extra={"target_id": handle.target_id})
            outcome = FetchFailure(FetchError(f"Status request failed: GET {handle.url}: {exc!r}"))

        if not handle._complete(outcome):
            logger.debug("Discarding outcome of cancelled fetch", extra={"target_id": handle.target_id})
            return

        try:
            if callback is not None:
                callback(handle, outcome)
        except Exception:
            logger.exception("Status fetch callback failed", extra={"target_id": handle.target_id})
        finally:
            handle._settle()

    def _perform(self, url: str) -> FetchOutcome:
        """Execute the GET and classify the result into success or one failure kind."""
        started = time.monotonic()
        try:
            response = self._session.get(url, timeout=self._settings.timeout_seconds)
        except requests.RequestException as exc:
            logger.debug("Status request failed", extra={"url": url, "error": str(exc)})
            return FetchFailure(TransportError(f"Status request failed: GET {url}: {exc}"))

        elapsed = time.monotonic() - started
        status_code = response.status_code
        if not 200 <= status_code < 300:
            return FetchFailure(
                HTTPStatusError(
                    f"Status request failed: GET {url} returned {status_code} - {response.text}",
                    status_code=status_code,
                )
            )

        body = response.content
        try:
            report = decode_check_suite_report(body)
        except DecodeError as exc:
            logger.debug("Status response did not decode", extra={"url": url, "error": str(exc)})
            return FetchFailure(exc)

        metadata = TransportMetadata(
            url=url,
            status_code=status_code,
            headers=dict(response.headers),
            body=body,
            elapsed_seconds=elapsed,
        )
        return FetchSuccess(report=report, metadata=metadata)
