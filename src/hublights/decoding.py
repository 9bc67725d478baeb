"""Decoding of GitHub check-suites payloads into typed records."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from .errors import DecodeError
from .models import CheckSuite, CheckSuiteConclusion, CheckSuiteReport, CheckSuiteStatus

E = TypeVar("E", CheckSuiteStatus, CheckSuiteConclusion)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: datetime) -> str:
    """Format a datetime as UTC ISO8601 the way the GitHub API emits it."""
    utc_value = value.astimezone(timezone.utc)
    return utc_value.isoformat().replace("+00:00", "Z")


def _require_int(item: Dict[str, Any], key: str) -> int:
    value = item.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"Expected integer '{key}', got {value!r}")
    return value


def _optional_str(item: Dict[str, Any], key: str) -> Optional[str]:
    value = item.get(key)
    if value is not None and not isinstance(value, str):
        raise DecodeError(f"Expected string or null '{key}', got {value!r}")
    return value


def _optional_enum(item: Dict[str, Any], key: str, enum_type: Type[E]) -> Optional[E]:
    value = _optional_str(item, key)
    if value is None:
        return None
    try:
        return enum_type(value)
    except ValueError as exc:
        raise DecodeError(f"Unrecognized {key} value {value!r}") from exc


def check_suite_from_dict(item: Any) -> CheckSuite:
    """Build a ``CheckSuite`` from one decoded JSON object.

    Raises:
        DecodeError: If required fields are missing, mistyped, or an enum value
            is not one of the documented members.
    """
    if not isinstance(item, dict):
        raise DecodeError(f"Expected check suite object, got {type(item).__name__}")

    url = item.get("url")
    if not isinstance(url, str):
        raise DecodeError(f"Expected string 'url', got {url!r}")

    completed_at_raw = _optional_str(item, "completed_at")
    try:
        completed_at = _parse_datetime(completed_at_raw)
    except ValueError as exc:
        raise DecodeError(f"Invalid completed_at timestamp {completed_at_raw!r}") from exc

    return CheckSuite(
        id=_require_int(item, "id"),
        url=url,
        node_id=_optional_str(item, "node_id"),
        head_branch=_optional_str(item, "head_branch"),
        head_sha=_optional_str(item, "head_sha"),
        status=_optional_enum(item, "status", CheckSuiteStatus),
        conclusion=_optional_enum(item, "conclusion", CheckSuiteConclusion),
        before=_optional_str(item, "before"),
        after=_optional_str(item, "after"),
        completed_at=completed_at,
    )


def check_suite_to_dict(suite: CheckSuite) -> Dict[str, Any]:
    """Serialize a ``CheckSuite`` using the API field names, omitting absent values."""
    payload: Dict[str, Any] = {"id": suite.id, "url": suite.url}
    optional_fields = {
        "node_id": suite.node_id,
        "head_branch": suite.head_branch,
        "head_sha": suite.head_sha,
        "status": suite.status.value if suite.status is not None else None,
        "conclusion": suite.conclusion.value if suite.conclusion is not None else None,
        "before": suite.before,
        "after": suite.after,
        "completed_at": (
            _format_datetime(suite.completed_at) if suite.completed_at is not None else None
        ),
    }
    payload.update({key: value for key, value in optional_fields.items() if value is not None})
    return payload


def decode_check_suite_report(raw: bytes) -> CheckSuiteReport:
    """Decode a check-suites response body.

    Args:
        raw: The exact response bytes.

    Returns:
        The typed report, with suites in payload order.

    Raises:
        DecodeError: If the body is not JSON or does not have the expected shape.
            The offending bytes are attached as ``DecodeError.body``.
    """
    try:
        payload = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise DecodeError("Response body is not valid JSON", body=raw) from exc
    except RecursionError as exc:
        raise DecodeError("Response body is nested too deeply", body=raw) from exc

    if not isinstance(payload, dict):
        raise DecodeError("Response body is not a JSON object", body=raw)

    try:
        total_count = _require_int(payload, "total_count")
        items = payload.get("check_suites")
        if not isinstance(items, list):
            raise DecodeError(f"Expected list 'check_suites', got {items!r}")
        suites: List[CheckSuite] = [check_suite_from_dict(item) for item in items]
    except DecodeError as exc:
        raise DecodeError(str(exc), body=raw) from exc
    except RecursionError as exc:
        raise DecodeError("Check suites are nested too deeply", body=raw) from exc

    return CheckSuiteReport(total_count=total_count, check_suites=suites)
