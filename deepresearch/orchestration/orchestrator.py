"""
Deep Research Orchestrator: bounded iterative retrieval across report sections.

Each iteration walks the sections in declaration order (sequentially, so a
section sees documents gathered by the sections before it), generates fresh
follow-up queries, fans them out to the section's allow-listed providers and
records which section hit which document. Coverage against per-section
targets is recomputed after every iteration; the loop stops early once no
section is missing documents, or after ``max_iterations``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..providers.models import ProviderQuery, evidence_key
from ..sources.duplication import DuplicationAnalyzer, SectionDocument
from ..sources.multi_source import MultiSourceSearchService
from .entities import extract_entities
from .followup import FollowupGeneratorService
from .models import (
    CoverageReport,
    FollowupContext,
    OrchestratorState,
    RunResult,
)

if TYPE_CHECKING:
    from ..config.loader import OrchestratorConfig
    from ..providers import DocumentResult, SearchProvider
    from .models import RunParams, Section

logger = logging.getLogger(__name__)


class DeepResearchOrchestrator:
    """
    Drives the section-by-section retrieval loop for one research question.

    Usage:
        orchestrator = DeepResearchOrchestrator()
        result = await orchestrator.run(
            RunParams(
                query="防衛費 増額",
                base_subqueries=["防衛費 財源"],
                providers=[rag, web],
                sections=build_sections(allow_by_section, targets),
                limit=20,
            )
        )

    A section failure (query generation or fan-out) is logged and skipped;
    a run always returns, with partial coverage if targets were not met.
    """

    def __init__(
        self,
        search_service: MultiSourceSearchService | None = None,
        followup_generator: FollowupGeneratorService | None = None,
        config: OrchestratorConfig | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            search_service: Fan-out service (default: MultiSourceSearchService)
            followup_generator: Query generator (default: FollowupGeneratorService)
            config: Loop configuration
        """
        if config is None:
            from ..config.loader import OrchestratorConfig
            config = OrchestratorConfig()

        self.search_service = search_service or MultiSourceSearchService()
        self.followup_generator = followup_generator or FollowupGeneratorService()
        self.max_iterations = config.max_iterations
        self.min_section_limit = config.min_section_limit
        self.queries_per_section = config.queries_per_section

    async def run(self, params: RunParams) -> RunResult:
        """
        Run the retrieval loop.

        Args:
            params: Question, sub-queries, providers, sections and limits

        Returns:
            RunResult with every retrieved document, the section hit map,
            the number of iterations used and the final coverage
        """
        state = OrchestratorState()
        all_docs: list[DocumentResult] = []
        section_hit_map: dict[str, set[str]] = {}
        used_entities: set[str] = set()
        section_hits: list[SectionDocument] = []

        coverage = self.measure_coverage(params.sections, section_hit_map)
        iterations = 0

        logger.info(
            f"Starting deep research query='{params.query}' "
            f"sections={len(params.sections)} providers={[p.id for p in params.providers]}"
        )

        for iteration in range(1, self.max_iterations + 1):
            iterations = iteration

            for section in params.sections:
                if not section.needs_retrieval:
                    continue

                providers = self.select_providers(section, params)
                if not providers:
                    logger.debug(f"[{section.name}] no allow-listed provider available")
                    continue

                try:
                    queries, docs = await self._search_section(
                        section=section,
                        providers=providers,
                        params=params,
                        state=state,
                        all_docs=all_docs,
                        used_entities=used_entities,
                        iteration=iteration,
                    )
                except Exception as e:
                    logger.error(f"[{section.name}] retrieval error: {e}")
                    continue

                if not queries:
                    continue

                search_context = " | ".join(queries)
                for doc in docs:
                    all_docs.append(doc)
                    key = evidence_key(doc)
                    section_hit_map.setdefault(key, set()).add(section.name)
                    state.add_document(doc)
                    section_hits.append(
                        SectionDocument(section=section.name, doc=doc, search_context=search_context)
                    )

                logger.info(
                    f"[{section.name}] iter={iteration} +{len(docs)} "
                    f"providers={','.join(p.id for p in providers)} queries={len(queries)}"
                )

            coverage = self.measure_coverage(params.sections, section_hit_map)
            logger.info(f"Iteration {iteration} coverage={coverage.current} missing={coverage.missing}")

            if coverage.is_complete:
                logger.info(f"All section targets met after {iteration} iteration(s)")
                break
        else:
            logger.info(f"Stopped after {iterations} iterations with partial coverage")

        return self._finalize(all_docs, section_hit_map, section_hits, iterations, coverage)

    def select_providers(self, section: Section, params: RunParams) -> list[SearchProvider]:
        """Providers allow-listed for the section, plus the seed provider if allowed."""
        allowed = set(section.providers)
        providers = [p for p in params.providers if p.id in allowed]

        seed = params.seed_provider
        if seed is not None and seed.id in allowed and seed not in providers:
            providers.append(seed)

        return providers

    def section_limit(self, limit: int) -> int:
        """Per-call result limit for one section."""
        return max(self.min_section_limit, limit // 2)

    def measure_coverage(
        self,
        sections: list[Section],
        section_hit_map: dict[str, set[str]],
    ) -> CoverageReport:
        """Coverage recomputed from the whole hit map, never incrementally."""
        return CoverageReport.from_hit_map(sections, section_hit_map)

    async def _search_section(
        self,
        section: Section,
        providers: list[SearchProvider],
        params: RunParams,
        state: OrchestratorState,
        all_docs: list[DocumentResult],
        used_entities: set[str],
        iteration: int,
    ) -> tuple[list[str], list[DocumentResult]]:
        """Generate this section's queries, record them as seen and fan out."""
        entities = extract_entities(all_docs)

        queries = self.followup_generator.generate(
            FollowupContext(
                section_key=section.name,
                user_query=params.query,
                base_subqueries=params.base_subqueries,
                iteration=iteration,
                state=state,
                entities=entities,
                used_entities=used_entities,
                as_of_date=params.as_of_date,
                k=self.queries_per_section,
            )
        )
        # Hinted forms can collide with earlier hinted queries
        queries = [q for q in dict.fromkeys(queries) if q not in state.seen_query_strings]
        if not queries:
            logger.info(f"[{section.name}] iter={iteration} no fresh queries, skipping")
            return [], []

        for query in queries:
            state.add_query(query)

        provider_query = ProviderQuery(
            original_question=params.query,
            subqueries=queries,
            limit=self.section_limit(params.limit),
            seed_urls=params.seed_urls,
        )
        docs = await self.search_service.search_across(providers, provider_query)
        return queries, docs

    def _finalize(
        self,
        all_docs: list[DocumentResult],
        section_hit_map: dict[str, set[str]],
        section_hits: list[SectionDocument],
        iterations: int,
        coverage: CoverageReport,
    ) -> RunResult:
        """Duplicate analysis and section-aware dedup of everything retrieved."""
        analyzer = DuplicationAnalyzer()
        for doc in all_docs:
            analyzer.collect_statistics(doc, section_hit_map)

        final_docs = analyzer.deduplicate_within_sections(section_hits)
        statistics = analyzer.generate_statistics(len(all_docs))
        analyzer.log_statistics(statistics)

        logger.info(
            f"Deep research finished: iterations={iterations} "
            f"docs={len(all_docs)} final={len(final_docs)}"
        )

        return RunResult(
            all_docs=all_docs,
            section_hit_map=section_hit_map,
            iterations=iterations,
            coverage=coverage,
            final_docs=final_docs,
            statistics=statistics,
        )
