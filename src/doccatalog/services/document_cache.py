"""Local snapshot persistence for the document collection."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Sequence

from ..models.document import Document, DocumentDecodeError, document_from_record, document_to_record
from .settings import default_cache_path

__all__ = ["DocumentCache"]

LOGGER = logging.getLogger(__name__)


class DocumentCache:
    """Persistence gateway storing the whole collection as one JSON array.

    Every ``save`` overwrites the previous snapshot. ``load`` never raises:
    a missing file yields an empty list, and a snapshot that cannot be
    decoded is discarded as a whole.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or default_cache_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Document]:
        if not self._path.exists():
            LOGGER.debug("No document cache at %s", self._path)
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Failed to load documents from %s: %s", self._path, exc)
            return []

        if not isinstance(payload, list):
            LOGGER.warning("Document cache %s does not contain an array; ignoring it", self._path)
            return []
        try:
            documents = [document_from_record(record) for record in payload]
        except DocumentDecodeError as exc:
            LOGGER.warning("Failed to load documents from %s: %s", self._path, exc)
            return []
        LOGGER.debug("Loaded %d document(s) from %s", len(documents), self._path)
        return documents

    def save(self, documents: Sequence[Document]) -> Path:
        body = json.dumps([document_to_record(doc) for doc in documents], ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            tmp_path.write_text(body, encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            LOGGER.error("Failed to save documents to %s: %s", self._path, exc)
        return self._path
