"""Domain models for HubLights check-suite monitoring.

The check-suite dataclasses model only the subset of the GitHub checks API
payload that the monitor displays. ``TargetConfiguration`` is the persisted
record for one monitored repository/branch.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, TypeVar, Union
from urllib.parse import quote

from .errors import DecodeError, FetchError

GITHUB_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
MIN_CHECK_INTERVAL = 30.0
NEW_TARGET_TITLE = "New Check"

T = TypeVar("T")


def with_default(value: Optional[T], default: T) -> T:
    """Fold an absent value to ``default``."""
    return default if value is None else value


def store_minimal(value: T, default: T) -> Optional[T]:
    """Return ``None`` when ``value`` equals ``default`` so persisted records stay minimal."""
    return None if value == default else value


class CheckSuiteStatus(str, Enum):
    """Lifecycle state reported for a check suite."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckSuiteConclusion(str, Enum):
    """Final outcome reported for a completed check suite."""

    ACTION_REQUIRED = "action_required"
    CANCELLED = "cancelled"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    SUCCESS = "success"
    SKIPPED = "skipped"
    STALE = "stale"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class CheckSuite:
    """Represents one check suite run against a commit."""

    id: int
    url: str
    node_id: Optional[str] = None
    head_branch: Optional[str] = None
    head_sha: Optional[str] = None
    status: Optional[CheckSuiteStatus] = None
    conclusion: Optional[CheckSuiteConclusion] = None
    before: Optional[str] = None
    after: Optional[str] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class CheckSuiteReport:
    """Represents the check-suites listing for a single commit reference."""

    total_count: int
    check_suites: List[CheckSuite] = field(default_factory=list)


def _new_target_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class TargetConfiguration:
    """Configuration for a single monitored repository branch.

    Optional fields are stored as ``None`` when they carry their default value;
    the ``*_defaulted`` properties expose the effective values. ``id`` is
    assigned once and cannot be rebound.
    """

    id: str = field(default_factory=_new_target_id)
    enabled: Optional[bool] = None
    title: Optional[str] = None
    org: Optional[str] = None
    repo: Optional[str] = None
    branch: Optional[str] = None
    check_interval: Optional[float] = None
    status: Optional[CheckSuite] = None

    def __post_init__(self) -> None:
        if self.check_interval is not None:
            self.check_interval_defaulted = self.check_interval

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and hasattr(self, "id"):
            raise AttributeError("TargetConfiguration.id is immutable")
        object.__setattr__(self, name, value)

    @classmethod
    def new(cls) -> "TargetConfiguration":
        """Create the placeholder target used by an explicit "add" intent."""
        return cls(title=NEW_TARGET_TITLE)

    @property
    def enabled_defaulted(self) -> bool:
        return with_default(self.enabled, False)

    @enabled_defaulted.setter
    def enabled_defaulted(self, value: bool) -> None:
        self.enabled = store_minimal(bool(value), False)

    @property
    def title_defaulted(self) -> str:
        return with_default(self.title, "")

    @title_defaulted.setter
    def title_defaulted(self, value: str) -> None:
        self.title = store_minimal(value, "")

    @property
    def check_interval_defaulted(self) -> float:
        """The check interval in seconds, never below ``MIN_CHECK_INTERVAL``."""
        return max(with_default(self.check_interval, MIN_CHECK_INTERVAL), MIN_CHECK_INTERVAL)

    @check_interval_defaulted.setter
    def check_interval_defaulted(self, value: float) -> None:
        seconds = float(value)
        if math.isnan(seconds):
            seconds = MIN_CHECK_INTERVAL
        self.check_interval = store_minimal(max(seconds, MIN_CHECK_INTERVAL), MIN_CHECK_INTERVAL)

    @property
    def list_item_title(self) -> str:
        """Display label: the explicit title, else ``org/repo/branch`` from the parts present."""
        if self.title is not None:
            return self.title
        return "/".join(part for part in (self.org, self.repo, self.branch) if part is not None)

    def service_url(self, base_url: str = GITHUB_API_URL) -> Optional[str]:
        """Build the check-suites URL for this target, or ``None`` without an org."""
        if self.org is None:
            return None

        org = quote(self.org, safe="")
        repo = quote(with_default(self.repo, self.org), safe="")
        branch = quote(with_default(self.branch, DEFAULT_BRANCH), safe="/")
        return f"{base_url.rstrip('/')}/repos/{org}/{repo}/commits/{branch}/check-suites"


def is_fetchable(target: TargetConfiguration) -> bool:
    """Return whether ``target`` has enough information to build a service URL."""
    return target.org is not None


@dataclass(frozen=True, slots=True)
class TransportMetadata:
    """Response details carried alongside a successfully decoded report."""

    url: str
    status_code: int
    headers: Dict[str, str]
    body: bytes
    elapsed_seconds: float


@dataclass(frozen=True, slots=True)
class FetchSuccess:
    report: CheckSuiteReport
    metadata: TransportMetadata


@dataclass(frozen=True, slots=True)
class FetchFailure:
    error: FetchError


FetchOutcome = Union[FetchSuccess, FetchFailure]


@dataclass(frozen=True, slots=True)
class Decoded:
    """Cached bytes decoded into a report."""

    report: CheckSuiteReport


@dataclass(frozen=True, slots=True)
class DecodeFailed:
    """Cached bytes that did not decode."""

    error: DecodeError


@dataclass(frozen=True, slots=True)
class FetchFailed:
    """The last fetch for a target failed before any body could be cached."""

    error: FetchError


DecodeResult = Union[Decoded, DecodeFailed]
StatusResult = Union[Decoded, DecodeFailed, FetchFailed]
