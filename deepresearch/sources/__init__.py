"""Multi-source search and duplicate analysis.

Usage:
    from deepresearch.sources import MultiSourceSearchService, DuplicationAnalyzer

    docs = await MultiSourceSearchService().search_across(providers, query)

    analyzer = DuplicationAnalyzer()
    for doc in docs:
        analyzer.collect_statistics(doc, section_hit_map)
    stats = analyzer.generate_statistics(len(docs))
"""

from .multi_source import MultiSourceSearchService
from .duplication import (
    DuplicationAnalyzer,
    DuplicationStats,
    DuplicateEntry,
    SectionDocument,
    SectionDuplicateCheck,
    truncate_key,
    hash_context,
)

__all__ = [
    "MultiSourceSearchService",
    "DuplicationAnalyzer",
    "DuplicationStats",
    "DuplicateEntry",
    "SectionDocument",
    "SectionDuplicateCheck",
    "truncate_key",
    "hash_context",
]
