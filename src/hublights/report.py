"""Status summarizing and text rendering for HubLights.

This module provides utilities for:
- Reducing a check-suites report to a single traffic-light state.
- Formatting check intervals as ``HH:MM:SS``.
- Rendering a cached status result (including failures) as readable text.
- Building the multi-target report printed by the CLI.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from .errors import HTTPStatusError, TransportError
from .models import (
    CheckSuiteConclusion,
    CheckSuiteReport,
    CheckSuiteStatus,
    Decoded,
    DecodeFailed,
    FetchFailed,
    StatusResult,
    TargetConfiguration,
    is_fetchable,
)


class Light(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    GRAY = "gray"


FAILING_CONCLUSIONS = frozenset(
    {
        CheckSuiteConclusion.FAILURE,
        CheckSuiteConclusion.TIMED_OUT,
        CheckSuiteConclusion.ACTION_REQUIRED,
    }
)


def summarize_light(report: CheckSuiteReport) -> Light:
    """Reduce a report to one light.

    - No suites: ``GRAY``.
    - Any completed suite with a failing conclusion: ``RED``.
    - Any suite not yet completed: ``YELLOW``.
    - Otherwise: ``GREEN``.
    """
    if not report.check_suites:
        return Light.GRAY

    if any(suite.conclusion in FAILING_CONCLUSIONS for suite in report.check_suites):
        return Light.RED

    if any(suite.status is not CheckSuiteStatus.COMPLETED for suite in report.check_suites):
        return Light.YELLOW

    return Light.GREEN


def status_light(result: Optional[StatusResult]) -> Light:
    if isinstance(result, Decoded):
        return summarize_light(result.report)
    if isinstance(result, (DecodeFailed, FetchFailed)):
        return Light.RED
    return Light.GRAY


def format_interval(seconds: Optional[float]) -> str:
    """Format seconds as ``HH:MM:SS``, or ``"n/a"`` when ``seconds`` is ``None``."""
    if seconds is None:
        return "n/a"

    total_seconds = int(round(seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    remaining_seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{remaining_seconds:02d}"


def render_status(result: Optional[StatusResult]) -> str:
    """Render one target's cached result as a short, user-facing message."""
    if result is None:
        return "No data"

    if isinstance(result, DecodeFailed):
        return f"Bad response: {result.error}"

    if isinstance(result, FetchFailed):
        error = result.error
        if isinstance(error, HTTPStatusError):
            return f"HTTP {error.status_code}: {error}"
        if isinstance(error, TransportError):
            return f"Offline: {error}"
        return f"Failure: {error}"

    report = result.report
    suites = report.check_suites
    lines = [f"{summarize_light(report).value.upper()} ({report.total_count} check suite(s))"]
    for suite in suites:
        conclusion = suite.conclusion.value if suite.conclusion is not None else "-"
        status = suite.status.value if suite.status is not None else "-"
        lines.append(f"  {conclusion} | {status} | {suite.head_sha or suite.id}")
    return "\n".join(lines)


def generate_report(targets: List[TargetConfiguration], statuses: List[Optional[StatusResult]]) -> str:
    """Generate the human-readable status listing for ``targets``.

    ``statuses`` is aligned with ``targets`` by position.
    """
    if not targets:
        return "No repositories configured."

    lines: List[str] = []
    for target, status in zip(targets, statuses):
        marker = "on " if target.enabled_defaulted else "off"
        light = status_light(status).value
        label = target.list_item_title or "(untitled)"
        lines.append(f"[{marker}] {light:<6} {target.id[:8]}  {label}")
        lines.append(f"   Interval: {format_interval(target.check_interval_defaulted)}")
        if not is_fetchable(target):
            lines.append("   Not checkable: no organization configured")
            continue
        for line in render_status(status).splitlines():
            lines.append(f"   {line}")

    return "\n".join(lines)
