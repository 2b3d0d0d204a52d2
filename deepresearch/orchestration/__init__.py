"""Orchestration of the iterative, section-driven retrieval loop.

- FollowupGeneratorService: diversified, non-repeating queries per section
- DeepResearchOrchestrator: bounded loop over sections with coverage tracking
- Planner / KeywordPlanner: base sub-query planning interface
"""

from .models import (
    Section,
    build_sections,
    OrchestratorState,
    Entities,
    CoverageReport,
    FollowupContext,
    RunParams,
    RunResult,
    url_domain,
)
from .entities import extract_entities
from .followup import (
    FollowupGeneratorService,
    SECTION_TEMPLATES,
    MEETING_PREFERRING_SECTIONS,
    tokenize,
    jaccard,
    dedup_strings,
    dedup_by_jaccard,
    mmr_select,
    inject_negative_hints,
)
from .orchestrator import DeepResearchOrchestrator
from .query_planner import QueryPlan, Planner, KeywordPlanner

__all__ = [
    # Models
    "Section",
    "build_sections",
    "OrchestratorState",
    "Entities",
    "CoverageReport",
    "FollowupContext",
    "RunParams",
    "RunResult",
    "url_domain",
    # Entities
    "extract_entities",
    # Follow-up generation
    "FollowupGeneratorService",
    "SECTION_TEMPLATES",
    "MEETING_PREFERRING_SECTIONS",
    "tokenize",
    "jaccard",
    "dedup_strings",
    "dedup_by_jaccard",
    "mmr_select",
    "inject_negative_hints",
    # Orchestrator
    "DeepResearchOrchestrator",
    # Planning
    "QueryPlan",
    "Planner",
    "KeywordPlanner",
]
