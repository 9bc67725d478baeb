"""Persisted-value codec and key-value storage for the configuration set.

The whole configuration set is stored as a single JSON string in a named
slot. Encoding never fails (it degrades to ``"{}"``) and decoding never
raises (it returns ``None``); callers fall back to an empty set.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .config_set import ConfigurationSet
from .decoding import check_suite_from_dict, check_suite_to_dict
from .errors import DecodeError, PersistenceDecodeError
from .models import TargetConfiguration

logger = logging.getLogger(__name__)

MODEL_STORAGE_KEY = "model"
ENCODE_FALLBACK = "{}"


class KeyValueStore(Protocol):
    """String slots keyed by name."""

    def load(self, key: str) -> Optional[str]:
        ...

    def save(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """In-process key-value store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._slots: Dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    def save(self, key: str, value: str) -> None:
        self._slots[key] = value


class JsonFileStore:
    """Key-value slots kept in one JSON object on disk.

    A missing or unreadable file behaves as an empty store. Writes go to a
    temporary sibling first and are renamed into place.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_slots(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable storage file", extra={"path": str(self.path), "error": str(exc)})
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file with unexpected shape", extra={"path": str(self.path)})
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def load(self, key: str) -> Optional[str]:
        return self._read_slots().get(key)

    def save(self, key: str, value: str) -> None:
        slots = self._read_slots()
        slots[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(slots, f, indent=2)
        os.replace(tmp_path, self.path)


def target_to_dict(target: TargetConfiguration) -> Dict[str, Any]:
    """Serialize a target using the persisted camelCase keys, omitting absent fields."""
    payload: Dict[str, Any] = {"id": target.id}
    optional_fields = {
        "enabled": target.enabled,
        "title": target.title,
        "org": target.org,
        "repo": target.repo,
        "branch": target.branch,
        "checkInterval": target.check_interval,
        "status": check_suite_to_dict(target.status) if target.status is not None else None,
    }
    payload.update({key: value for key, value in optional_fields.items() if value is not None})
    return payload


def _optional(item: Dict[str, Any], key: str, *expected: type) -> Any:
    value = item.get(key)
    if value is None:
        return None
    if (isinstance(value, bool) and bool not in expected) or not isinstance(value, expected):
        names = "/".join(kind.__name__ for kind in expected)
        raise PersistenceDecodeError(f"Expected {names} for '{key}', got {value!r}")
    return value


def target_from_dict(item: Any) -> TargetConfiguration:
    """Rebuild a target from its persisted form.

    Raises:
        PersistenceDecodeError: If the record is not an object or a field has
            the wrong type.
    """
    if not isinstance(item, dict):
        raise PersistenceDecodeError(f"Expected target object, got {type(item).__name__}")

    target_id = item.get("id")
    if not isinstance(target_id, str) or not target_id:
        raise PersistenceDecodeError(f"Expected non-empty string 'id', got {target_id!r}")

    check_interval = _optional(item, "checkInterval", int, float)
    status_raw = _optional(item, "status", dict)
    try:
        status = check_suite_from_dict(status_raw) if status_raw is not None else None
    except DecodeError as exc:
        raise PersistenceDecodeError(f"Invalid status for target '{target_id}': {exc}") from exc

    return TargetConfiguration(
        id=target_id,
        enabled=_optional(item, "enabled", bool),
        title=_optional(item, "title", str),
        org=_optional(item, "org", str),
        repo=_optional(item, "repo", str),
        branch=_optional(item, "branch", str),
        check_interval=float(check_interval) if check_interval is not None else None,
        status=status,
    )


def _configuration_set_from_json(text: str) -> ConfigurationSet:
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise PersistenceDecodeError("Persisted model is not valid JSON") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("configs"), list):
        raise PersistenceDecodeError("Persisted model has no 'configs' list")

    try:
        return ConfigurationSet(target_from_dict(item) for item in payload["configs"])
    except ValueError as exc:
        raise PersistenceDecodeError(str(exc)) from exc


def encode_value(config_set: ConfigurationSet) -> str:
    """Encode ``config_set`` to its persisted string form.

    Returns ``ENCODE_FALLBACK`` and logs when serialization fails.
    """
    try:
        return json.dumps({"configs": [target_to_dict(target) for target in config_set]})
    except (TypeError, ValueError) as exc:
        logger.info("Failed to encode configuration set", extra={"error": str(exc)})
        return ENCODE_FALLBACK


def decode_value(text: Optional[str]) -> Optional[ConfigurationSet]:
    """Decode a persisted configuration set, returning ``None`` when absent or corrupt."""
    if not text:
        return None
    try:
        return _configuration_set_from_json(text)
    except PersistenceDecodeError as exc:
        logger.info("Failed to decode persisted configuration set", extra={"error": str(exc)})
        return None


def load_configuration_set(store: KeyValueStore, key: str = MODEL_STORAGE_KEY) -> ConfigurationSet:
    """Restore the configuration set from ``store``, falling back to an empty set."""
    decoded = decode_value(store.load(key))
    if decoded is None:
        logger.debug("No persisted configuration set; starting empty", extra={"key": key})
        return ConfigurationSet()
    return decoded


def save_configuration_set(
    store: KeyValueStore,
    config_set: ConfigurationSet,
    key: str = MODEL_STORAGE_KEY,
) -> None:
    """Persist ``config_set`` into the named slot of ``store``."""
    store.save(key, encode_value(config_set))
