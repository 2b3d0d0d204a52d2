"""Provider backed by an HTTP JSON retrieval (vector search) endpoint."""

import asyncio
import logging
from typing import Any

import httpx

from ..settings import (
    HTTP_TIMEOUT_SECONDS,
    MAX_RETRIES,
    RETRY_BACKOFF_FACTOR,
)
from .models import DocumentResult, DocumentSource, ProviderQuery
from .protocols import SearchProvider

logger = logging.getLogger(__name__)


class HttpRagProvider(SearchProvider):
    """
    Adapter for a retrieval endpoint speaking JSON.

    The endpoint accepts ``POST {"query", "subqueries", "limit"}`` and answers
    ``{"results": [DocumentResult, ...]}``.

    Usage:
        async with HttpRagProvider("kokkai-db", "http://localhost:8001/search") as rag:
            docs = await rag.search(query)

    Used without ``async with``, each search opens a short-lived client.
    """

    def __init__(
        self,
        provider_id: str,
        endpoint: str,
        api_key: str | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        max_retries: int = MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the RAG provider.

        Args:
            provider_id: Id used in section allow-lists and document sources
            endpoint: Full URL of the search endpoint
            api_key: Optional bearer token
            timeout: Per-request timeout in seconds
            max_retries: Attempts for connection errors and 5xx responses
            transport: Optional httpx transport (tests use MockTransport)
        """
        if not endpoint:
            raise ValueError(f"Provider '{provider_id}' requires an endpoint")

        self.id = provider_id
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._transport = transport

        self.headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

        self._client: httpx.AsyncClient | None = None

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def __aenter__(self) -> "HttpRagProvider":
        self._client = self._new_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def search(self, query: ProviderQuery) -> list[DocumentResult]:
        """POST the query and normalize the returned documents."""
        payload = {
            "query": query.original_question,
            "subqueries": query.subqueries,
            "limit": query.limit,
        }

        if self._client is not None:
            data = await self._post_with_retry(self._client, payload)
        else:
            async with self._new_client() as client:
                data = await self._post_with_retry(client, payload)

        docs: list[DocumentResult] = []
        for raw in data.get("results") or []:
            doc = DocumentResult.model_validate(raw)
            if doc.source is None:
                doc = doc.model_copy(
                    update={"source": DocumentSource(provider_id=self.id, type=self.id)}
                )
            docs.append(doc)

        logger.info(f"[{self.id}] {len(docs)} documents for {len(query.subqueries)} subqueries")
        return docs

    async def _post_with_retry(
        self,
        client: httpx.AsyncClient,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """POST with exponential backoff on connection errors and 5xx."""
        last_exception: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                response = await client.post(self.endpoint, json=payload)

                if response.status_code in (500, 502, 503, 504) and attempt + 1 < self.max_retries:
                    backoff = RETRY_BACKOFF_FACTOR ** attempt
                    logger.warning(f"[{self.id}] server error ({response.status_code}), backoff {backoff}s")
                    await asyncio.sleep(backoff)
                    continue

                response.raise_for_status()
                return response.json()

            except (httpx.ConnectError, httpx.ReadTimeout) as e:
                last_exception = e
                if attempt + 1 >= self.max_retries:
                    break
                backoff = RETRY_BACKOFF_FACTOR ** attempt
                logger.warning(f"[{self.id}] connection error: {e}, backoff {backoff}s")
                await asyncio.sleep(backoff)

        logger.error(f"[{self.id}] request failed after {self.max_retries} attempts")
        if last_exception:
            raise last_exception
        raise RuntimeError(f"[{self.id}] request failed after all retries")
