"""Factory functions to create providers and the orchestrator from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..providers.models import DocumentResult, DocumentSource, ProviderQuery
from .loader import find_unexpanded_vars

if TYPE_CHECKING:
    from ..orchestration import DeepResearchOrchestrator, RunParams
    from ..providers import SearchProvider
    from .loader import ProfileConfig, ProviderConfig

logger = logging.getLogger(__name__)


class MockSearchProvider:
    """Mock provider over an in-memory corpus, for offline runs and testing.

    A document matches when any search term (sub-query words of two or more
    characters, ``-site:`` hints excluded) occurs in its title or content.
    Matches keep corpus order and are capped at ``query.limit``.
    """

    def __init__(
        self,
        provider_id: str,
        documents: list[DocumentResult | dict[str, Any]] | None = None,
    ):
        self.id = provider_id
        self.calls: list[ProviderQuery] = []
        self._documents = [
            self._normalize(doc if isinstance(doc, DocumentResult) else DocumentResult.model_validate(doc))
            for doc in documents or []
        ]

    def _normalize(self, doc: DocumentResult) -> DocumentResult:
        if doc.source is not None:
            return doc
        return doc.model_copy(update={"source": DocumentSource(provider_id=self.id, type="mock")})

    @staticmethod
    def _terms(query: ProviderQuery) -> set[str]:
        terms: set[str] = set()
        for subquery in query.subqueries:
            for word in subquery.lower().split():
                if word.startswith("-site:") or len(word) < 2:
                    continue
                terms.add(word)
        return terms

    async def search(self, query: ProviderQuery) -> list[DocumentResult]:
        """Return corpus documents mentioning any search term."""
        self.calls.append(query)
        terms = self._terms(query)

        matches = []
        for doc in self._documents:
            text = f"{doc.title or ''}\n{doc.content}".lower()
            if any(term in text for term in terms):
                matches.append(doc)
            if len(matches) >= query.limit:
                break

        return matches

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


def create_provider(config: ProviderConfig) -> SearchProvider:
    """Create a provider from configuration.

    Args:
        config: Provider configuration

    Returns:
        SearchProvider instance (HttpRagProvider, HttpDocsProvider, or Mock)

    Raises:
        ValueError: If backend type is not supported or required fields are missing
    """
    if config.backend == "http_rag":
        from ..providers import HttpRagProvider

        if not config.endpoint:
            raise ValueError(f"http_rag provider '{config.id}' requires 'endpoint' in config")

        unset = find_unexpanded_vars(config.endpoint)
        if unset:
            raise ValueError(
                f"http_rag provider '{config.id}' endpoint references unset variable(s): {', '.join(unset)}"
            )

        api_key = config.api_key
        if find_unexpanded_vars(api_key):
            logger.warning(f"http_rag provider '{config.id}' api_key is unset, sending no credentials")
            api_key = None

        return HttpRagProvider(
            provider_id=config.id,
            endpoint=config.endpoint,
            api_key=api_key,
            timeout=config.timeout,
        )

    elif config.backend == "http_docs":
        from ..providers import HttpDocsProvider

        return HttpDocsProvider(
            provider_id=config.id,
            timeout=config.timeout,
            max_bytes=config.max_bytes,
        )

    elif config.backend == "mock":
        return MockSearchProvider(config.id, config.documents)

    else:
        raise ValueError(f"Unsupported provider backend: {config.backend}")


def create_providers(
    profile: ProfileConfig,
) -> tuple[list[SearchProvider], SearchProvider | None]:
    """Create all providers of a profile.

    The provider named by ``profile.seed_provider`` is returned separately:
    it only serves seed URLs and joins a section when allow-listed there.

    Args:
        profile: Profile configuration

    Returns:
        Tuple of (search providers, seed provider or None)
    """
    providers: list[SearchProvider] = []
    seed_provider = None

    for provider_config in profile.providers:
        unset = find_unexpanded_vars(provider_config.endpoint)
        if unset:
            logger.warning(
                f"Skipping provider '{provider_config.id}': endpoint needs {', '.join(unset)}"
            )
            continue

        provider = create_provider(provider_config)
        if provider_config.id == profile.seed_provider:
            seed_provider = provider
        else:
            providers.append(provider)

    if profile.seed_provider and seed_provider is None:
        logger.warning(f"Seed provider '{profile.seed_provider}' is not configured")

    return providers, seed_provider


def create_orchestrator(profile: ProfileConfig) -> DeepResearchOrchestrator:
    """Create a DeepResearchOrchestrator wired with the profile's settings."""
    from ..orchestration import DeepResearchOrchestrator, FollowupGeneratorService

    return DeepResearchOrchestrator(
        followup_generator=FollowupGeneratorService(config=profile.followup),
        config=profile.orchestrator,
    )


def create_run_params(
    profile: ProfileConfig,
    query: str,
    base_subqueries: list[str],
    providers: list[SearchProvider],
    seed_provider: SearchProvider | None = None,
    seed_urls: list[str] | None = None,
    as_of_date: str | None = None,
    limit: int | None = None,
) -> RunParams:
    """Build RunParams from a profile's sections and limit."""
    from ..orchestration import RunParams, Section

    sections = [
        Section(name=name, providers=list(cfg.providers), target=cfg.target)
        for name, cfg in profile.sections.items()
    ]

    return RunParams(
        query=query,
        base_subqueries=base_subqueries,
        providers=providers,
        sections=sections,
        limit=limit if limit is not None else profile.limit,
        seed_urls=seed_urls or None,
        seed_provider=seed_provider,
        as_of_date=as_of_date,
    )
