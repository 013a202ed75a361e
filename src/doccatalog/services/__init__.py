"""Service layer helpers (settings, persistence, fetch, notifications)."""

from .api_client import DocumentApiClient, DocumentFetchError
from .document_cache import DocumentCache
from .notifications import NotificationService
from .settings import Settings, SettingsStore

__all__ = [
    "DocumentApiClient",
    "DocumentCache",
    "DocumentFetchError",
    "NotificationService",
    "Settings",
    "SettingsStore",
]
