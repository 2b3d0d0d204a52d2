"""
Duplication Analyzer Tests

Tests for global duplicate statistics and section-aware dedup.
"""

from deepresearch.providers import DocumentResult, DocumentSource
from deepresearch.sources import DuplicationAnalyzer, SectionDocument, hash_context, truncate_key


def make_doc(doc_id, url=None, provider="web"):
    return DocumentResult(
        id=doc_id,
        url=url,
        source=DocumentSource(provider_id=provider, type=provider),
    )


def test_collect_and_generate_statistics():
    """Repeated keys are counted across providers and sections."""
    print("=" * 60)
    print("TEST 1: Global duplicate statistics")
    print("=" * 60)

    hit_map = {
        "https://x/1": {"timeline", "background"},
        "https://x/2": {"timeline"},
    }
    docs = [
        make_doc("a", "https://x/1", "web"),
        make_doc("a2", "https://x/1", "rag"),
        make_doc("b", "https://x/2", "web"),
    ]

    analyzer = DuplicationAnalyzer()
    for doc in docs:
        analyzer.collect_statistics(doc, hit_map)
    stats = analyzer.generate_statistics(len(docs))

    print(f"\n  total={stats.total_documents} unique={stats.unique_documents}")
    assert stats.total_documents == 3
    assert stats.unique_documents == 2
    assert stats.duplicates_removed == 1
    assert stats.duplicate_percentage == 33
    assert stats.by_section == {"timeline": {"rag": 1}, "background": {"rag": 1}}

    assert len(stats.top_duplicates) == 1
    top = stats.top_duplicates[0]
    assert top.key == "https://x/1"
    assert top.sections == ["background", "timeline"]
    assert top.providers == ["rag", "web"]
    assert top.count == 2
    print("\n[PASS] Statistics generated")


def test_collecting_same_document_twice_counts_twice():
    analyzer = DuplicationAnalyzer()
    doc = make_doc("a", "https://x/1")

    for _ in range(3):
        analyzer.collect_statistics(doc, {})
    stats = analyzer.generate_statistics(3)

    assert stats.unique_documents == 1
    assert stats.duplicates_removed == 2
    assert stats.top_duplicates[0].count == 3
    assert stats.duplicate_percentage == 67


def test_unique_never_exceeds_total():
    analyzer = DuplicationAnalyzer()
    docs = [make_doc(str(i), f"https://x/{i % 3}") for i in range(7)]
    for doc in docs:
        analyzer.collect_statistics(doc, {})

    stats = analyzer.generate_statistics(len(docs))

    assert stats.unique_documents == 3
    assert stats.unique_documents <= stats.total_documents
    assert stats.duplicates_removed == stats.total_documents - stats.unique_documents


def test_percentage_rounds_half_up():
    analyzer = DuplicationAnalyzer()
    doc = make_doc("a", "https://x/1")
    analyzer.collect_statistics(doc, {})
    analyzer.collect_statistics(doc, {})

    assert analyzer.generate_statistics(8).duplicate_percentage == 13  # 12.5
    assert analyzer.generate_statistics(40).duplicate_percentage == 3  # 2.5
    assert analyzer.generate_statistics(0).duplicate_percentage == 0


def test_top_duplicates_sorted_by_count_stable():
    analyzer = DuplicationAnalyzer()
    counts = {"https://x/a": 2, "https://x/b": 3, "https://x/c": 2}
    for url, count in counts.items():
        for _ in range(count):
            analyzer.collect_statistics(make_doc(url, url), {})

    stats = analyzer.generate_statistics(7, top_n=2)

    assert [d.key for d in stats.top_duplicates] == ["https://x/b", "https://x/a"]


def test_long_keys_truncated_for_display():
    url = "https://example.com/" + "a" * 70
    assert len(url) == 90

    analyzer = DuplicationAnalyzer()
    analyzer.collect_statistics(make_doc("a", url), {})
    analyzer.collect_statistics(make_doc("a", url), {})
    key = analyzer.generate_statistics(2).top_duplicates[0].key

    assert len(key) == 53
    assert key == url[:50] + "..."
    assert truncate_key("short") == "short"


def test_check_section_duplicate_is_section_scoped():
    analyzer = DuplicationAnalyzer()
    doc = make_doc("a", "https://x/1")

    assert analyzer.check_section_duplicate("timeline", doc).is_duplicate is False
    assert analyzer.check_section_duplicate("timeline", doc).is_duplicate is True
    assert analyzer.check_section_duplicate("background", doc).is_duplicate is False
    assert analyzer.check_section_duplicate("background", doc).key == "https://x/1"


def test_deduplicate_within_sections_by_context():
    """Same document, same section: kept again only under a new search context."""
    doc_a = make_doc("a", "https://x/a")
    doc_b = make_doc("b")

    items = [
        SectionDocument("timeline", doc_a, "q1"),
        SectionDocument("timeline", doc_a, "q1"),
        SectionDocument("timeline", doc_a, "q2"),
        SectionDocument("background", doc_a, "q1"),
        SectionDocument("timeline", doc_b),
        SectionDocument("timeline", doc_b),
    ]

    deduped = DuplicationAnalyzer().deduplicate_within_sections(items)

    assert [d.id for d in deduped] == ["a", "a", "a", "b"]


def test_hash_context():
    assert hash_context("  Hello ") == "hello_len5"
    assert hash_context("x" * 150) == "x" * 100 + "_len150"
    # Same prefix, different length
    assert hash_context("a" * 100 + "b") != hash_context("a" * 100 + "bc")


def test_get_unique_documents_first_seen_order():
    analyzer = DuplicationAnalyzer()
    first = make_doc("a", "https://x/1", "web")
    analyzer.collect_statistics(make_doc("b", "https://x/2"), {})
    analyzer.collect_statistics(first, {})
    analyzer.collect_statistics(make_doc("c", "https://x/1", "rag"), {})

    unique = analyzer.get_unique_documents()

    assert [d.id for d in unique] == ["b", "a"]


def test_reset_clears_everything():
    analyzer = DuplicationAnalyzer()
    doc = make_doc("a", "https://x/1")
    analyzer.collect_statistics(doc, {"https://x/1": {"timeline"}})
    analyzer.collect_statistics(doc, {"https://x/1": {"timeline"}})
    analyzer.check_section_duplicate("timeline", doc)

    analyzer.reset()
    stats = analyzer.generate_statistics(0)

    assert stats.unique_documents == 0
    assert stats.by_section == {}
    assert stats.top_duplicates == []
    assert analyzer.check_section_duplicate("timeline", doc).is_duplicate is False


def test_stats_to_dict():
    analyzer = DuplicationAnalyzer()
    doc = make_doc("a", "https://x/1")
    analyzer.collect_statistics(doc, {})
    analyzer.collect_statistics(doc, {})

    data = analyzer.generate_statistics(2).to_dict()

    assert data["duplicates_removed"] == 1
    assert data["duplicate_percentage"] == 50
    assert data["top_duplicates"][0]["key"] == "https://x/1"


def main():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("DUPLICATION ANALYZER TESTS")
    print("=" * 60)

    for name, fn in list(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()

    print("\n" + "=" * 60)
    print("ALL TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
