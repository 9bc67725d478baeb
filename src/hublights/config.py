"""Runtime settings parsing and validation for HubLights."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError
from .models import GITHUB_API_URL

DEFAULT_STORAGE_PATH = Path("~/.config/hublights/storage.json")


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings used by the fetcher and storage layers."""

    api_url: str
    token: Optional[str]
    timeout_seconds: float
    max_workers: int
    storage_path: Path


def load_settings(
    storage_path: Optional[str] = None,
    timeout_seconds: float = 30.0,
    max_workers: int = 4,
) -> Settings:
    """Build and validate application settings.

    Explicit arguments win over environment variables:

    - ``HUBLIGHTS_API_URL``: API base URL (default ``https://api.github.com``).
    - ``GITHUB_TOKEN``: optional token sent with every status request.
    - ``HUBLIGHTS_STORAGE``: path of the JSON storage file.

    Raises:
        ConfigurationError: If the API URL is not HTTP(S), or the timeout or
            worker count is not positive.
    """
    api_url = os.getenv("HUBLIGHTS_API_URL", GITHUB_API_URL).strip().rstrip("/")
    if not api_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid value for 'HUBLIGHTS_API_URL': expected an http(s) URL, got '{api_url}'."
        )

    if timeout_seconds <= 0:
        raise ConfigurationError("Invalid value for 'timeout': expected a number greater than 0.")

    if max_workers <= 0:
        raise ConfigurationError("Invalid value for 'workers': expected an integer greater than 0.")

    token = os.getenv("GITHUB_TOKEN", "").strip() or None

    raw_path = storage_path or os.getenv("HUBLIGHTS_STORAGE", "").strip() or str(DEFAULT_STORAGE_PATH)

    return Settings(
        api_url=api_url,
        token=token,
        timeout_seconds=float(timeout_seconds),
        max_workers=max_workers,
        storage_path=Path(raw_path).expanduser(),
    )
