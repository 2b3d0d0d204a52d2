"""Deep research retrieval: iterative, section-driven evidence gathering.

Usage:
    from deepresearch import DeepResearchOrchestrator, RunParams, build_sections

    orchestrator = DeepResearchOrchestrator()
    result = await orchestrator.run(RunParams(...))
"""

from .orchestration import (
    DeepResearchOrchestrator,
    FollowupGeneratorService,
    RunParams,
    RunResult,
    Section,
    build_sections,
)
from .providers import DocumentResult, ProviderQuery, SearchProvider
from .sources import DuplicationAnalyzer, MultiSourceSearchService

__all__ = [
    "DeepResearchOrchestrator",
    "FollowupGeneratorService",
    "RunParams",
    "RunResult",
    "Section",
    "build_sections",
    "DocumentResult",
    "ProviderQuery",
    "SearchProvider",
    "DuplicationAnalyzer",
    "MultiSourceSearchService",
]
