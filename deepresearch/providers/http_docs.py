"""Direct-fetch provider for seed URLs (HTML, plain text and PDF)."""

import asyncio
import logging
from typing import Any

import httpx
from bs4 import BeautifulSoup

from ..settings import HTTP_MAX_BYTES, HTTP_TIMEOUT_SECONDS
from .models import DocumentResult, DocumentSource, ProviderQuery
from .protocols import SearchProvider

logger = logging.getLogger(__name__)

PDF_PLACEHOLDER = "PDF document (text extraction not enabled)."


def html_to_text(html: str) -> tuple[str | None, str]:
    """
    Extract the title and readable text of an HTML page.

    Scripts, styles and the <head> are dropped; comments never reach the
    text and entities are decoded by the parser.

    Returns:
        Tuple of (title or None, text with one block per line)
    """
    soup = BeautifulSoup(html, "html.parser")

    title = None
    if soup.title and soup.title.string:
        title = " ".join(soup.title.string.split()) or None

    for element in soup(["script", "style", "head"]):
        element.decompose()

    text = soup.get_text(separator="\n", strip=True)
    return title, text


class HttpDocsProvider(SearchProvider):
    """
    Fetches the exact URLs given in ``ProviderQuery.seed_urls``.

    This is not a search engine: sub-queries are ignored. Every URL is fetched
    concurrently, the body is read up to ``max_bytes`` and turned into text.
    URLs that fail (malformed URL, network error, non-2xx) are skipped.
    """

    def __init__(
        self,
        provider_id: str = "seed-docs",
        timeout: float = HTTP_TIMEOUT_SECONDS,
        max_bytes: int = HTTP_MAX_BYTES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.id = provider_id
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def __aenter__(self) -> "HttpDocsProvider":
        self._client = self._new_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def search(self, query: ProviderQuery) -> list[DocumentResult]:
        """Fetch every seed URL and return the ones that succeeded."""
        urls = query.seed_urls or []
        if not urls:
            return []

        if self._client is not None:
            docs = await self._fetch_all(self._client, urls)
        else:
            async with self._new_client() as client:
                docs = await self._fetch_all(client, urls)

        logger.info(f"[{self.id}] fetched {len(docs)}/{len(urls)} seed URLs")
        return docs

    async def _fetch_all(
        self,
        client: httpx.AsyncClient,
        urls: list[str],
    ) -> list[DocumentResult]:
        results = await asyncio.gather(
            *(self._fetch_one(client, url, idx) for idx, url in enumerate(urls))
        )
        return [doc for doc in results if doc is not None]

    async def _fetch_one(
        self,
        client: httpx.AsyncClient,
        url: str,
        idx: int,
    ) -> DocumentResult | None:
        try:
            async with client.stream("GET", url) as response:
                if response.status_code >= 400:
                    logger.warning(f"[{self.id}] {url} returned {response.status_code}")
                    return None

                content_type = response.headers.get("content-type", "")
                chunks: list[bytes] = []
                total = 0
                async for chunk in response.aiter_bytes():
                    remaining = self.max_bytes - total
                    if len(chunk) > remaining:
                        chunks.append(chunk[:remaining])
                        logger.debug(f"[{self.id}] {url} truncated at {self.max_bytes} bytes")
                        break
                    chunks.append(chunk)
                    total += len(chunk)
                body = b"".join(chunks)
                encoding = response.charset_encoding or "utf-8"
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning(f"[{self.id}] failed to fetch {url}: {e}")
            return None

        title = None
        if "application/pdf" in content_type:
            text = PDF_PLACEHOLDER
        else:
            try:
                raw = body.decode(encoding, errors="replace")
            except LookupError:
                raw = body.decode("utf-8", errors="replace")
            if "html" in content_type:
                title, text = html_to_text(raw)
            else:
                text = raw.strip()

        return DocumentResult(
            id=f"{self.id}:{idx}",
            title=title,
            content=text,
            url=url,
            score=0.5,  # neutral baseline
            source=DocumentSource(provider_id=self.id, type=self.id),
            extras={"content_type": content_type},
        )
