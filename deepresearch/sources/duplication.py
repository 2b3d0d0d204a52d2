"""Duplicate analysis for documents gathered across sections and providers."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from ..providers.models import DocumentResult, evidence_key

logger = logging.getLogger(__name__)

DISPLAY_KEY_LENGTH = 50
CONTEXT_PREFIX_LENGTH = 100


def truncate_key(key: str, max_length: int = DISPLAY_KEY_LENGTH) -> str:
    """Shorten a key for reports. Never used for dedup decisions."""
    return key[:max_length] + "..." if len(key) > max_length else key


def hash_context(content: str) -> str:
    """Cheap signature of a search context: normalized prefix plus total length."""
    normalized = content.strip().lower()
    return f"{normalized[:CONTEXT_PREFIX_LENGTH]}_len{len(normalized)}"


def section_specific_key(
    doc: DocumentResult,
    section: str,
    search_context: str | None = None,
) -> str:
    """Key that separates the same document across sections and search contexts."""
    context_part = f":{hash_context(search_context)}" if search_context else ""
    return f"{evidence_key(doc)}:{section}{context_part}"


@dataclass
class DuplicationInfo:
    """Accumulated occurrences of one evidence key."""

    first_doc: DocumentResult
    sections: set[str] = field(default_factory=set)
    providers: set[str] = field(default_factory=set)
    count: int = 1


@dataclass
class DuplicateEntry:
    """One row of the "most duplicated" report."""

    key: str
    sections: list[str]
    providers: list[str]
    count: int


@dataclass
class DuplicationStats:
    """Summary produced by DuplicationAnalyzer.generate_statistics."""

    total_documents: int
    unique_documents: int
    duplicates_removed: int
    duplicate_percentage: int
    by_section: dict[str, dict[str, int]]
    top_duplicates: list[DuplicateEntry]

    def to_dict(self) -> dict:
        """Convert stats to a JSON-friendly dictionary."""
        return {
            "total_documents": self.total_documents,
            "unique_documents": self.unique_documents,
            "duplicates_removed": self.duplicates_removed,
            "duplicate_percentage": self.duplicate_percentage,
            "by_section": self.by_section,
            "top_duplicates": [
                {
                    "key": d.key,
                    "sections": d.sections,
                    "providers": d.providers,
                    "count": d.count,
                }
                for d in self.top_duplicates
            ],
        }


@dataclass
class SectionDocument:
    """A document as retrieved for one section, optionally with its search context."""

    section: str
    doc: DocumentResult
    search_context: str | None = None


@dataclass
class SectionDuplicateCheck:
    """Result of DuplicationAnalyzer.check_section_duplicate."""

    is_duplicate: bool
    key: str


class DuplicationAnalyzer:
    """
    Tracks duplicates across sections and providers.

    Two strategies are available and independent of each other:

    - Global statistics: ``collect_statistics`` counts every occurrence of an
      evidence key, ``generate_statistics`` summarizes them.
    - Section-scoped dedup: ``check_section_duplicate`` flags a document only
      when its key was already seen in the same section, and
      ``deduplicate_within_sections`` additionally keeps the same document
      twice when it was found under different search contexts.
    """

    def __init__(self):
        self._key_info: dict[str, DuplicationInfo] = {}
        self._by_section: dict[str, dict[str, int]] = {}
        self._section_seen: dict[str, set[str]] = {}

    def collect_statistics(
        self,
        doc: DocumentResult,
        section_hit_map: dict[str, set[str]],
    ) -> None:
        """Record one occurrence of a document (no removal)."""
        key = evidence_key(doc)
        sections = section_hit_map.get(key, set())
        provider = doc.provider_id

        info = self._key_info.get(key)
        if info is None:
            self._key_info[key] = DuplicationInfo(
                first_doc=doc,
                sections=set(sections),
                providers={provider},
            )
            return

        info.count += 1
        info.sections.update(sections)
        info.providers.add(provider)

        # Section x provider counts only grow on repeat occurrences
        for section in sections:
            per_provider = self._by_section.setdefault(section, {})
            per_provider[provider] = per_provider.get(provider, 0) + 1

    def check_section_duplicate(
        self,
        section: str,
        doc: DocumentResult,
    ) -> SectionDuplicateCheck:
        """Flag a document seen before in this same section; other sections don't count."""
        key = evidence_key(doc)
        seen = self._section_seen.setdefault(section, set())

        if key in seen:
            return SectionDuplicateCheck(is_duplicate=True, key=key)

        seen.add(key)
        return SectionDuplicateCheck(is_duplicate=False, key=key)

    def deduplicate_within_sections(
        self,
        items: list[SectionDocument],
    ) -> list[DocumentResult]:
        """
        Remove repeats of the same (document, section, search context).

        The same document in the same section under a different search
        context is kept. Order of first occurrences is preserved.

        Args:
            items: Documents tagged with their section and search context

        Returns:
            Documents that survived, in input order
        """
        deduped: list[DocumentResult] = []
        seen_keys: set[str] = set()

        for item in items:
            key = section_specific_key(item.doc, item.section, item.search_context)
            if key in seen_keys:
                continue
            seen_keys.add(key)
            deduped.append(item.doc)

        logger.debug(f"Section-aware dedup kept {len(deduped)} of {len(items)} items")
        return deduped

    def generate_statistics(self, total_documents: int, top_n: int = 5) -> DuplicationStats:
        """Summarize everything passed to collect_statistics so far."""
        details: list[DuplicateEntry] = []
        duplicates_removed = 0

        for key, info in self._key_info.items():
            if info.count > 1:
                duplicates_removed += info.count - 1
                details.append(
                    DuplicateEntry(
                        key=truncate_key(key),
                        sections=sorted(info.sections),
                        providers=sorted(info.providers),
                        count=info.count,
                    )
                )

        # Stable sort keeps first-seen order among equal counts
        details.sort(key=lambda d: d.count, reverse=True)

        # Half-up rounding
        percentage = (
            math.floor(duplicates_removed * 100 / total_documents + 0.5)
            if total_documents > 0
            else 0
        )

        return DuplicationStats(
            total_documents=total_documents,
            unique_documents=len(self._key_info),
            duplicates_removed=duplicates_removed,
            duplicate_percentage=percentage,
            by_section={s: dict(p) for s, p in self._by_section.items()},
            top_duplicates=details[:top_n],
        )

    def get_unique_documents(self) -> list[DocumentResult]:
        """First-seen document for every evidence key, in first-seen order."""
        return [info.first_doc for info in self._key_info.values()]

    def log_statistics(self, stats: DuplicationStats) -> None:
        """Write a duplication report to the log."""
        logger.info(
            f"Duplication analysis: total={stats.total_documents} "
            f"unique={stats.unique_documents} "
            f"duplicates={stats.duplicates_removed} ({stats.duplicate_percentage}%)"
        )
        for section, providers in stats.by_section.items():
            for provider, count in providers.items():
                logger.info(f"  {section} + {provider}: {count} duplicates")
        for entry in stats.top_duplicates:
            logger.info(
                f'  "{entry.key}": {entry.count}x in [{", ".join(entry.sections)}] '
                f'from [{", ".join(entry.providers)}]'
            )

    def reset(self) -> None:
        """Forget all collected statistics and per-section seen keys."""
        self._key_info.clear()
        self._by_section.clear()
        self._section_seen.clear()
