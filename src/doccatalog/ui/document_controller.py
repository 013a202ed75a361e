"""Composition root tying the store, the view and the realtime channel together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from ..models.document import Document, SortField, ViewMode
from ..models.notification import SocketNotification
from ..realtime.channel import ChannelManager, NotificationHandler
from ..realtime.mapper import from_notification
from ..services.api_client import DocumentFetchError
from ..services.notifications import NotificationService
from .domain.document_store import DocumentStore
from .domain.sorting import SortSelection, toggle_sort
from .view import View

if TYPE_CHECKING:  # pragma: no cover
    from ..services.api_client import DocumentApiClient

LOGGER = logging.getLogger(__name__)

ChannelFactory = Callable[[NotificationHandler], ChannelManager]
SortToggle = Callable[[SortField, Any, SortField], SortSelection]


class DocumentController:
    """Coordinates document sources and re-renders the view on store changes.

    Documents arrive from the initial fetch, from user creation through the
    view's modal, and from the realtime channel; each goes through
    :meth:`DocumentStore.add_document`, and the store notification triggers
    a render.
    """

    def __init__(
        self,
        store: DocumentStore,
        view: View | None,
        *,
        channel_factory: ChannelFactory | None = None,
        channel_url: str | None = None,
        notifications: NotificationService | None = None,
        sort_toggle: SortToggle = toggle_sort,
    ) -> None:
        """Wire the collaborators and render once.

        Args:
            store: The document store; owned by the caller.
            view: Rendering surface. Required.
            channel_factory: Builds the channel manager given the inbound
                notification handler. Defaults to a websocket channel on
                ``channel_url``.
            channel_url: Channel URL used by the default factory.
            notifications: Notification formatter; defaults to one over
                ``view``.
            sort_toggle: Sort toggle policy.

        Raises:
            ValueError: If ``view`` is missing, or neither a channel factory
                nor a channel URL is supplied.
        """
        if view is None:
            raise ValueError("DocumentController requires a view to render into")
        factory = channel_factory
        if factory is None:
            if not channel_url:
                raise ValueError("DocumentController requires a channel_factory or channel_url")
            url = channel_url

            def factory(handler: NotificationHandler) -> ChannelManager:
                return ChannelManager(url, handler)

        self._store = store
        self._view = view
        self._notifications = notifications or NotificationService(view)
        self._sort_toggle = sort_toggle
        self._channel = factory(self._handle_notification)
        self._subscription = store.subscribe(self.refresh)
        self.refresh()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def channel(self) -> ChannelManager:
        return self._channel

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Render the current store state into the view."""
        self._view.render(
            self._store.get_documents(),
            self._store.sort_field,
            self._store.view_mode,
            self.on_sort,
            self.on_create,
            self.on_view_mode_change,
        )

    # ------------------------------------------------------------------
    # View callbacks
    # ------------------------------------------------------------------

    def on_sort(self, field: SortField) -> None:
        selection = self._sort_toggle(self._store.sort_field, self._store.sort_order, SortField(field))
        self._store.set_sort_field(selection.field)
        self._store.set_sort_order(selection.order)

    def on_view_mode_change(self, mode: ViewMode) -> None:
        self._store.set_view_mode(mode)

    def on_create(self) -> None:
        self._view.show_modal(self._handle_created)

    def _handle_created(self, document: Document) -> None:
        # Shown even when the store rejects a duplicate id.
        self._store.add_document(document)
        self._notifications.notify_document_created(document)

    # ------------------------------------------------------------------
    # Document sources
    # ------------------------------------------------------------------

    async def load_initial_documents(self, api: DocumentApiClient, *, connect: bool = True) -> int:
        """Fetch the server's documents into the store.

        On success the realtime channel is connected when ``connect`` is
        true. A fetch failure is logged and the catalog keeps running on
        cached data.

        Returns:
            The number of newly added documents.
        """
        try:
            documents = await api.fetch_documents()
        except DocumentFetchError as exc:
            LOGGER.error("Failed to load documents: %s", exc)
            return 0
        added = sum(1 for document in documents if self._store.add_document(document))
        LOGGER.info("Loaded %d new document(s) of %d fetched", added, len(documents))
        if connect:
            self.connect()
        return added

    def _handle_notification(self, notification: SocketNotification) -> None:
        document = from_notification(notification)
        self._store.add_document(document)
        self._notifications.notify_document_received(document)

    # ------------------------------------------------------------------
    # Channel
    # ------------------------------------------------------------------

    def connect(self) -> None:
        self._channel.connect()

    def disconnect(self) -> None:
        self._channel.disconnect()

    def send(self, data: Any) -> None:
        self._channel.send(data)

    def close(self) -> None:
        """Disconnect the channel and stop listening to the store."""
        self._channel.disconnect()
        self._subscription.cancel()


__all__ = ["ChannelFactory", "DocumentController"]
