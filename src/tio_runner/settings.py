from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_BASE_URL = "https://tio.run"
DEFAULT_REFRESH_SECONDS = 850
DEFAULT_MIN_TIMEOUT_MS = 500
DEFAULT_TIMEOUT_MS = 3000


def _read_settings_toml(path: Path) -> dict[str, Any]:
    """Read a settings TOML file and return the `[tio]` table (or the top level).

    Example:
        ```python
        raw = _read_settings_toml(Path("/tmp/tio.toml"))
        ```
    """
    if not path.exists():
        return {}
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    table = raw.get("tio", raw)
    if not isinstance(table, dict):
        raise ValueError("Settings config must be a TOML table")
    return table


def _positive_int(value: Any, field_name: str) -> int:
    """Validate a strictly positive integer setting.

    Example:
        ```python
        seconds = _positive_int(850, "refresh_seconds")
        ```
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{field_name}' must be an integer")
    if value <= 0:
        raise ValueError(f"'{field_name}' must be greater than zero")
    return value


@dataclass(slots=True)
class RunnerSettings:
    """Connection and timing settings for the tio.run client.

    Example:
        ```python
        settings = RunnerSettings(base_url="https://tio.run", refresh_seconds=600)
        ```
    """

    base_url: str = DEFAULT_BASE_URL
    refresh_seconds: int = DEFAULT_REFRESH_SECONDS
    min_timeout_ms: int = DEFAULT_MIN_TIMEOUT_MS
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate URL and timing fields after dataclass initialization.

        Example:
            ```python
            RunnerSettings(base_url="https://tio.run/")
            ```
        """
        if not isinstance(self.base_url, str) or not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must start with 'http://' or 'https://'")
        self.base_url = self.base_url.rstrip("/")
        _positive_int(self.refresh_seconds, "refresh_seconds")
        _positive_int(self.min_timeout_ms, "min_timeout_ms")
        _positive_int(self.default_timeout_ms, "default_timeout_ms")

    @classmethod
    def from_file(cls, config_path: str) -> "RunnerSettings":
        """Create settings from a TOML file, falling back to defaults for missing keys.

        Example:
            ```python
            settings = RunnerSettings.from_file("/tmp/tio.toml")
            ```
        """
        raw = _read_settings_toml(Path(config_path))
        return cls(
            base_url=str(raw.get("base_url", DEFAULT_BASE_URL)),
            refresh_seconds=raw.get("refresh_seconds", DEFAULT_REFRESH_SECONDS),
            min_timeout_ms=raw.get("min_timeout_ms", DEFAULT_MIN_TIMEOUT_MS),
            default_timeout_ms=raw.get("default_timeout_ms", DEFAULT_TIMEOUT_MS),
            config_path=config_path,
        )

    def effective_timeout_ms(self, requested_ms: int | float) -> int:
        """Apply the timeout floor to a requested timeout.

        Example:
            ```python
            RunnerSettings().effective_timeout_ms(1)  # 500
            ```
        """
        return int(max(self.min_timeout_ms, requested_ms))
