"""Per-target cache of the latest check-suites response.

Raw response bytes are authoritative. The decoded form is computed lazily on
first read and memoized by the SHA-256 digest of those bytes. Memos are shared
across entries, so re-fetching identical bytes (for the same target or another)
does not parse them again, while new bytes always get a fresh decode.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .decoding import decode_check_suite_report
from .errors import DecodeError, FetchError
from .models import Decoded, DecodeFailed, DecodeResult, FetchFailed, StatusResult

logger = logging.getLogger(__name__)

MAX_MEMOS = 128


def content_digest(raw: bytes) -> str:
    return hashlib.sha256(raw).hexdigest()


class _Entry:
    """One cached fetch result. ``raw`` and ``failure`` never change after creation."""

    __slots__ = ("raw", "digest", "failure", "updated_at", "memo", "lock")

    def __init__(self, raw: Optional[bytes] = None, failure: Optional[FetchError] = None) -> None:
        self.raw = raw
        self.digest = content_digest(raw) if raw is not None else None
        self.failure = failure
        self.updated_at = datetime.now(timezone.utc)
        self.memo: Optional[DecodeResult] = None
        self.lock = threading.Lock()


class StatusStore:
    """Process-wide map from target id to its latest fetch result.

    The map and the digest-keyed memo table are guarded by one lock; decoding
    happens under a per-entry lock so a slow decode for one target never holds
    up another.
    """

    def __init__(self, max_memos: int = MAX_MEMOS) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}
        self._memos: "OrderedDict[str, DecodeResult]" = OrderedDict()
        self._max_memos = max_memos

    def __contains__(self, target_id: object) -> bool:
        with self._lock:
            return target_id in self._entries

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def _entry(self, target_id: str) -> Optional[_Entry]:
        with self._lock:
            return self._entries.get(target_id)

    def _lookup_memo(self, digest: str) -> Optional[DecodeResult]:
        with self._lock:
            memo = self._memos.get(digest)
            if memo is not None:
                self._memos.move_to_end(digest)
            return memo

    def _remember(self, digest: str, result: DecodeResult) -> None:
        with self._lock:
            self._memos[digest] = result
            self._memos.move_to_end(digest)
            while len(self._memos) > self._max_memos:
                self._memos.popitem(last=False)

    def _decoded(self, entry: _Entry) -> Optional[DecodeResult]:
        if entry.raw is None:
            return None
        with entry.lock:
            if entry.memo is None:
                memo = self._lookup_memo(entry.digest)
                if memo is None:
                    try:
                        memo = Decoded(decode_check_suite_report(entry.raw))
                    except DecodeError as exc:
                        memo = DecodeFailed(exc)
                    self._remember(entry.digest, memo)
                entry.memo = memo
            return entry.memo

    def start_check(self, target_id: str) -> None:
        """Clear any cached result so readers see "no data yet" while a fetch is in flight."""
        with self._lock:
            self._entries.pop(target_id, None)

    def complete_check(self, target_id: str, raw: bytes, decoded: Optional[DecodeResult] = None) -> None:
        """Store freshly received bytes for ``target_id``.

        ``decoded`` may carry a decode the caller already performed on exactly
        these bytes; it seeds the memo so the first read does not parse again.
        """
        entry = _Entry(raw=bytes(raw))
        if decoded is not None:
            entry.memo = decoded
            self._remember(entry.digest, decoded)
        with self._lock:
            self._entries[target_id] = entry
        logger.debug(
            "Cached status response",
            extra={"target_id": target_id, "size": len(raw), "digest": entry.digest},
        )

    def fail_check(self, target_id: str, error: FetchError) -> None:
        """Record a fetch that failed before producing a cacheable body."""
        with self._lock:
            self._entries[target_id] = _Entry(failure=error)

    def discard(self, target_id: str) -> None:
        with self._lock:
            self._entries.pop(target_id, None)

    def updated_at(self, target_id: str) -> Optional[datetime]:
        entry = self._entry(target_id)
        return entry.updated_at if entry is not None else None

    def read(self, target_id: str) -> Optional[bytes]:
        """Return the raw bytes cached for ``target_id``, or ``None``."""
        entry = self._entry(target_id)
        return entry.raw if entry is not None else None

    def read_decoded(self, target_id: str) -> Optional[DecodeResult]:
        """Return the memoized decode of the cached bytes, or ``None`` without bytes."""
        entry = self._entry(target_id)
        return self._decoded(entry) if entry is not None else None

    def read_status(self, target_id: str) -> Optional[StatusResult]:
        """Return the decoded result, or ``FetchFailed`` when the last fetch never got a body."""
        entry = self._entry(target_id)
        if entry is None:
            return None
        if entry.failure is not None:
            return FetchFailed(entry.failure)
        return self._decoded(entry)
