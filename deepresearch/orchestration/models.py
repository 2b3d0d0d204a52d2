"""Data models for the deep research orchestration loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urlparse

if TYPE_CHECKING:
    from ..providers import DocumentResult, SearchProvider
    from ..sources import DuplicationStats


def url_domain(url: str) -> str | None:
    """Lower-cased host of a URL, or None when it has none."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


@dataclass
class Section:
    """A named slice of the report with its own providers and evidence target."""

    name: str
    providers: list[str] = field(default_factory=list)
    target: int = 0  # 0 = nothing to retrieve, built from existing evidence

    @property
    def needs_retrieval(self) -> bool:
        """Whether any provider is allow-listed for this section."""
        return bool(self.providers)


def build_sections(
    allow_by_section: dict[str, list[str]],
    targets: dict[str, int],
) -> list[Section]:
    """
    Build sections from allow-list and target mappings.

    Declaration order of ``allow_by_section`` is kept; sections that only
    appear in ``targets`` are appended with an empty allow-list.
    """
    sections = [
        Section(name=name, providers=list(providers), target=targets.get(name, 0))
        for name, providers in allow_by_section.items()
    ]
    for name, target in targets.items():
        if name not in allow_by_section:
            sections.append(Section(name=name, providers=[], target=target))
    return sections


@dataclass
class OrchestratorState:
    """What one run has already asked for and seen.

    Owned by a single run; the follow-up generator only reads it.
    ``seen_domains`` keeps insertion order (negative hints use the oldest).
    """

    seen_query_strings: set[str] = field(default_factory=set)
    seen_urls: set[str] = field(default_factory=set)
    seen_domains: list[str] = field(default_factory=list)

    def add_query(self, query: str) -> None:
        self.seen_query_strings.add(query)

    def add_domain(self, domain: str) -> None:
        if domain not in self.seen_domains:
            self.seen_domains.append(domain)

    def add_document(self, doc: DocumentResult) -> None:
        """Record a retrieved document's URL and domain."""
        if not doc.url:
            return
        self.seen_urls.add(doc.url)
        domain = url_domain(doc.url)
        if domain:
            self.add_domain(domain)


@dataclass
class Entities:
    """Speakers, parties and meetings mentioned by documents gathered so far.

    Lists hold unique values in first-seen order.
    """

    speakers: list[str] = field(default_factory=list)
    parties: list[str] = field(default_factory=list)
    meetings: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.speakers or self.parties or self.meetings)


@dataclass
class CoverageReport:
    """Per-section evidence counts against targets."""

    current: dict[str, int]
    missing: dict[str, int]

    @property
    def is_complete(self) -> bool:
        """True when no section still misses documents."""
        return all(count <= 0 for count in self.missing.values())

    @classmethod
    def from_hit_map(
        cls,
        sections: list[Section],
        section_hit_map: dict[str, set[str]],
    ) -> CoverageReport:
        """Recompute coverage from scratch.

        A document counts once for every section in its hit set; because hit
        sets are sets, repeated retrieval in one section never double-counts.
        """
        current = {section.name: 0 for section in sections}
        for hit_sections in section_hit_map.values():
            for name in hit_sections:
                current[name] = current.get(name, 0) + 1

        missing = {
            section.name: max(0, section.target - current.get(section.name, 0))
            for section in sections
            if section.target > 0
        }
        return cls(current=current, missing=missing)


@dataclass
class FollowupContext:
    """Input to FollowupGeneratorService.generate for one section/iteration."""

    section_key: str
    user_query: str
    base_subqueries: list[str]
    iteration: int
    state: OrchestratorState
    entities: Entities | None = None
    used_entities: set[str] | None = None  # expansions already emitted; updated in place
    as_of_date: str | None = None
    k: int | None = None


@dataclass
class RunParams:
    """Entry point parameters for DeepResearchOrchestrator.run."""

    query: str
    base_subqueries: list[str]
    providers: list[SearchProvider]
    sections: list[Section]
    limit: int = 20
    seed_urls: list[str] | None = None
    seed_provider: SearchProvider | None = None
    as_of_date: str | None = None


@dataclass
class RunResult:
    """Everything a run collected, handed to the synthesizer."""

    all_docs: list[DocumentResult]
    section_hit_map: dict[str, set[str]]
    iterations: int
    coverage: CoverageReport
    final_docs: list[DocumentResult] = field(default_factory=list)
    statistics: DuplicationStats | None = None

    @property
    def total_documents(self) -> int:
        return len(self.all_docs)

    @property
    def unique_documents(self) -> int:
        """Number of distinct evidence keys retrieved."""
        return len(self.section_hit_map)
