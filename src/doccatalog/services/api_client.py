"""Async client for the document catalog's bulk fetch endpoint."""

from __future__ import annotations

import inspect
import logging
from typing import Any, List

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..models.document import Document, DocumentDecodeError, document_from_record

__all__ = ["DocumentApiClient", "DocumentFetchError"]

LOGGER = logging.getLogger(__name__)


class DocumentFetchError(RuntimeError):
    """Raised when the document list cannot be fetched or decoded."""


class _ServerError(Exception):
    """Internal marker for retryable 5xx responses."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"{response.status_code} {response.reason_phrase}")
        self.response = response


class DocumentApiClient:
    """Fetches the full document list with retry semantics."""

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = 10.0,
        max_retries: int = 3,
        retry_min_seconds: float = 0.5,
        retry_max_seconds: float = 6.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._max_retries = max_retries
        self._retry_min_seconds = retry_min_seconds
        self._retry_max_seconds = retry_max_seconds

    @property
    def documents_url(self) -> str:
        return f"{self._base_url}/documents"

    async def fetch_documents(self) -> List[Document]:
        """Return every document the server knows about.

        Raises:
            DocumentFetchError: On transport failure after retries, any
                non-success status, or a body that is not a list of records.
        """

        url = self.documents_url
        LOGGER.debug("Fetching documents from %s", url)
        try:
            response = await self._get_with_retry(url)
        except _ServerError as exc:
            raise DocumentFetchError(f"Failed to fetch documents: {exc}") from exc
        except httpx.HTTPError as exc:
            raise DocumentFetchError(f"Failed to fetch documents: {exc!r}") from exc

        if not response.is_success:
            raise DocumentFetchError(
                f"Failed to fetch documents: {response.status_code} {response.reason_phrase}"
            )

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise DocumentFetchError("Document list response is not valid JSON") from exc
        if not isinstance(payload, list):
            raise DocumentFetchError("Document list response is not a JSON array")
        try:
            documents = [document_from_record(record) for record in payload]
        except DocumentDecodeError as exc:
            raise DocumentFetchError(f"Document list contained a malformed record: {exc}") from exc
        LOGGER.info("Fetched %d document(s) from %s", len(documents), url)
        return documents

    async def _get_with_retry(self, url: str) -> httpx.Response:
        async for attempt in self._retrying():
            with attempt:
                response = await self._client.get(url)
                if response.status_code >= 500:
                    LOGGER.warning("Document fetch returned %s; retrying", response.status_code)
                    raise _ServerError(response)
                return response
        raise DocumentFetchError("Document fetch exhausted retries")  # pragma: no cover

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._max_retries)),
            wait=wait_exponential(
                multiplier=self._retry_min_seconds,
                max=self._retry_max_seconds,
            ),
            retry=retry_if_exception_type((httpx.TransportError, _ServerError)),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this instance created it."""

        if not self._owns_client:
            return
        result = self._client.aclose()
        if inspect.isawaitable(result):
            await result
