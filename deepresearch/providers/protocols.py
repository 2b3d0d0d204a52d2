"""Protocol definitions for document search providers."""

from typing import Protocol, runtime_checkable

from .models import DocumentResult, ProviderQuery


@runtime_checkable
class SearchProvider(Protocol):
    """Protocol for document search providers.

    Implement this protocol to add a new source (vector DB, web search,
    direct URL fetch, ...). Providers enforce their own timeouts and retries;
    callers only rely on "returns a list, or raises".
    """

    id: str

    async def search(self, query: ProviderQuery) -> list[DocumentResult]:
        """
        Search for documents matching a structured query.

        Args:
            query: Original question, sub-queries, result limit and seed URLs

        Returns:
            List of DocumentResult objects
        """
        ...
