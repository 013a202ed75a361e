"""Domain layer for the catalog UI.

Domain Managers:
    - DocumentStore: Document collection and sort/view state

Sort Engine:
    - toggle_sort / sort_documents: pure ordering policy

Domain managers receive dependencies via constructor injection and
announce changes through the event bus.
"""

from __future__ import annotations

from .document_store import DocumentStore
from .sorting import SortSelection, sort_documents, toggle_sort

__all__: list[str] = [
    "DocumentStore",
    "SortSelection",
    "sort_documents",
    "toggle_sort",
]
