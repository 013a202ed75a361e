"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..models.document import SortField, SortOrder, ViewMode

__all__ = [
    "Settings",
    "SettingsStore",
    "SETTINGS_DIR",
    "default_cache_path",
]

LOGGER = logging.getLogger(__name__)
SETTINGS_DIR = Path.home() / ".doccatalog"
_DEFAULT_SETTINGS_PATH = SETTINGS_DIR / "settings.json"
_CACHE_FILENAME = "documents.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "DOCCATALOG_API_BASE_URL": "api_base_url",
    "DOCCATALOG_WEBSOCKET_URL": "websocket_url",
    "DOCCATALOG_CACHE_PATH": "cache_path",
    "DOCCATALOG_SORT_FIELD": "sort_field",
    "DOCCATALOG_SORT_ORDER": "sort_order",
    "DOCCATALOG_VIEW_MODE": "view_mode",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "DOCCATALOG_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "DOCCATALOG_REQUEST_TIMEOUT": "request_timeout",
    "DOCCATALOG_RECONNECT_DELAY": "reconnect_delay",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "DOCCATALOG_FETCH_MAX_RETRIES": "fetch_max_retries",
    "DOCCATALOG_RECONNECT_ATTEMPTS": "reconnect_attempts",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def default_cache_path() -> Path:
    return SETTINGS_DIR / _CACHE_FILENAME


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    api_base_url: str = "http://localhost:8080"
    websocket_url: str = "ws://localhost:8080/notifications"
    request_timeout: float = 10.0
    fetch_max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    reconnect_attempts: int = 5
    reconnect_delay: float = 3.0
    cache_path: str | None = None
    sort_field: str = SortField.CREATED_AT.value
    sort_order: str = SortOrder.DESC.value
    view_mode: str = ViewMode.LIST.value
    debug_logging: bool = False

    def resolved_cache_path(self) -> Path:
        if self.cache_path:
            return Path(self.cache_path).expanduser()
        return default_cache_path()


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
        LOGGER.debug("Settings loaded from %s (%d stored field(s))", self._path, len(payload))

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        settings = self._apply_env_overrides(settings)
        return _sanitize(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            data = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return data

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid integer",
                    env_name,
                    value,
                )
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid float", env_name, value
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}


def _sanitize(settings: Settings) -> Settings:
    """Reset enum-valued fields that hold unknown values to their defaults."""

    defaults = Settings()
    fixes: Dict[str, Any] = {}
    for name, enum_type in (("sort_field", SortField), ("sort_order", SortOrder), ("view_mode", ViewMode)):
        value = getattr(settings, name)
        try:
            enum_type(value)
        except ValueError:
            LOGGER.warning("Ignoring unknown %s %r", name, value)
            fixes[name] = getattr(defaults, name)
    if settings.reconnect_attempts < 0:
        fixes["reconnect_attempts"] = defaults.reconnect_attempts
    if settings.reconnect_delay < 0:
        fixes["reconnect_delay"] = defaults.reconnect_delay
    if fixes:
        settings = replace(settings, **fixes)
    return settings
