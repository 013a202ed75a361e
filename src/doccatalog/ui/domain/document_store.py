"""Document store domain manager.

Single source of truth for the document collection and the sort/view state
the catalog is displayed with. Every mutation persists (where relevant) and
is announced through the event bus before the mutating call returns.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Protocol, Sequence

from ...models.document import Document, SortField, SortOrder, ViewMode
from ..events import ChangeReason, EventBus, StoreChanged, Subscription
from .sorting import sort_documents

LOGGER = logging.getLogger(__name__)

Listener = Callable[[], None]


class DocumentGateway(Protocol):
    """Durable snapshot storage for the whole collection."""

    def load(self) -> list[Document]: ...

    def save(self, documents: Sequence[Document]) -> object: ...


class DocumentStore:
    """Domain manager for the document catalog.

    Documents are append-only by identity: a document whose id is already
    present is rejected. Listeners are invoked synchronously from inside
    the mutating call and must not call back into the store's mutators.

    Events Emitted:
        - StoreChanged(DOCUMENT_ADDED): After a new document is stored
        - StoreChanged(SORT_FIELD / SORT_ORDER): On every sort setter call
        - StoreChanged(VIEW_MODE): On every view mode setter call
    """

    def __init__(
        self,
        gateway: DocumentGateway,
        event_bus: EventBus | None = None,
        *,
        sort_field: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        view_mode: ViewMode = ViewMode.LIST,
    ) -> None:
        """Initialize the store and hydrate it from ``gateway``.

        Args:
            gateway: Persistence gateway; loaded once here, saved on every
                accepted insertion.
            event_bus: Bus used for change notifications; a private bus is
                created when omitted.
            sort_field: Initial sort field.
            sort_order: Initial sort order.
            view_mode: Initial view mode.
        """
        self._gateway = gateway
        self._bus: EventBus = event_bus if event_bus is not None else EventBus()
        self._documents: list[Document] = []
        self._ids: set[str] = set()
        self._sort_field = SortField(sort_field)
        self._sort_order = SortOrder(sort_order)
        self._view_mode = ViewMode(view_mode)
        self._hydrate(gateway.load())

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def get_documents(self) -> list[Document]:
        """Return a new list of all documents in the current sort order."""
        return sort_documents(self._documents, self._sort_field, self._sort_order)

    def add_document(self, document: Document) -> bool:
        """Insert ``document`` unless its id is already stored.

        Returns:
            True if the document was inserted, False for a duplicate id.

        Emits:
            StoreChanged(DOCUMENT_ADDED): After the collection is persisted.
        """
        if document.id in self._ids:
            LOGGER.warning("Document with ID %s already exists", document.id)
            return False

        self._documents.append(document)
        self._ids.add(document.id)
        self._gateway.save(list(self._documents))
        LOGGER.debug(
            "DocumentStore.add_document: document_id=%s, count=%d",
            document.id,
            len(self._documents),
        )
        self._bus.publish(StoreChanged(reason=ChangeReason.DOCUMENT_ADDED, document_id=document.id))
        return True

    def has_document(self, document_id: str) -> bool:
        return document_id in self._ids

    def document_count(self) -> int:
        return len(self._documents)

    # ------------------------------------------------------------------
    # Sort / View State
    # ------------------------------------------------------------------

    @property
    def sort_field(self) -> SortField:
        return self._sort_field

    @property
    def sort_order(self) -> SortOrder:
        return self._sort_order

    @property
    def view_mode(self) -> ViewMode:
        return self._view_mode

    def set_sort_field(self, field: SortField) -> None:
        """Set the sort field; always notifies, even when unchanged."""
        self._sort_field = SortField(field)
        self._bus.publish(StoreChanged(reason=ChangeReason.SORT_FIELD))

    def set_sort_order(self, order: SortOrder) -> None:
        """Set the sort order; always notifies, even when unchanged."""
        self._sort_order = SortOrder(order)
        self._bus.publish(StoreChanged(reason=ChangeReason.SORT_ORDER))

    def set_view_mode(self, mode: ViewMode) -> None:
        """Set the view mode; always notifies, even when unchanged."""
        self._view_mode = ViewMode(mode)
        self._bus.publish(StoreChanged(reason=ChangeReason.VIEW_MODE))

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    def subscribe(self, listener: Listener) -> Subscription:
        """Register a zero-argument listener called after every mutation.

        Returns:
            A token whose ``cancel()`` (or call) removes this listener only.
        """

        def _deliver(_event: StoreChanged) -> None:
            listener()

        subscription = self._bus.subscribe(StoreChanged, _deliver)
        LOGGER.debug("Store listener added (%d active)", self._bus.handler_count(StoreChanged))
        return subscription

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _hydrate(self, documents: Iterable[Document]) -> None:
        skipped = 0
        for document in documents:
            if document.id in self._ids:
                skipped += 1
                continue
            self._documents.append(document)
            self._ids.add(document.id)
        if skipped:
            LOGGER.warning("Skipped %d cached document(s) with duplicate ids", skipped)
        LOGGER.debug("DocumentStore hydrated with %d document(s)", len(self._documents))


__all__ = ["DocumentGateway", "DocumentStore", "Listener"]
