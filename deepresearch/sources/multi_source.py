"""Fan-out search across several document providers."""

import asyncio
import logging

from ..providers.models import DocumentResult, DocumentSource, ProviderQuery, evidence_key
from ..providers.protocols import SearchProvider

logger = logging.getLogger(__name__)


class MultiSourceSearchService:
    """
    Queries a list of providers concurrently and merges their results.

    - Every provider is awaited; a failing provider contributes nothing and
      never cancels its siblings.
    - Results without a ``source`` are stamped with the calling provider's id.
    - Merged results are deduplicated by evidence key (first seen wins, in
      provider order) and sorted by score, highest first. Missing scores
      count as 0 and ties keep their merge order.

    Usage:
        service = MultiSourceSearchService()
        docs = await service.search_across([rag, web], query)
    """

    async def search_across(
        self,
        providers: list[SearchProvider],
        query: ProviderQuery,
    ) -> list[DocumentResult]:
        """Search all providers in parallel and merge results."""
        if not providers:
            return []

        tasks = [provider.search(query) for provider in providers]
        results_lists = await asyncio.gather(*tasks, return_exceptions=True)

        merged: list[DocumentResult] = []
        for provider, results in zip(providers, results_lists):
            if isinstance(results, BaseException):
                logger.warning(f"Provider {provider.id} failed: {results}")
                continue
            merged.extend(self._stamp_source(provider, doc) for doc in results)

        unique = self._dedupe(merged)
        unique.sort(key=lambda d: d.score or 0.0, reverse=True)

        logger.debug(
            f"Merged {len(merged)} results from {len(providers)} providers "
            f"into {len(unique)} documents"
        )
        return unique

    @staticmethod
    def _stamp_source(provider: SearchProvider, doc: DocumentResult) -> DocumentResult:
        if doc.source is not None:
            return doc
        return doc.model_copy(
            update={"source": DocumentSource(provider_id=provider.id, type=provider.id)}
        )

    @staticmethod
    def _dedupe(docs: list[DocumentResult]) -> list[DocumentResult]:
        seen: set[str] = set()
        unique: list[DocumentResult] = []
        for doc in docs:
            key = evidence_key(doc)
            if key in seen:
                continue
            seen.add(key)
            unique.append(doc)
        return unique
