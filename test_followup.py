"""
Follow-up Query Generation Tests

Tests for template expansion, entity expansion, dedup, MMR selection
and negative domain hints.
"""

from deepresearch.config import FollowupConfig
from deepresearch.orchestration import (
    Entities,
    FollowupContext,
    FollowupGeneratorService,
    OrchestratorState,
    dedup_by_jaccard,
    dedup_strings,
    inject_negative_hints,
    jaccard,
    mmr_select,
    tokenize,
)

QUERY = "防衛費 増額"


def make_ctx(section="timeline", state=None, **kwargs):
    return FollowupContext(
        section_key=section,
        user_query=QUERY,
        base_subqueries=kwargs.pop("base_subqueries", []),
        iteration=kwargs.pop("iteration", 1),
        state=state or OrchestratorState(),
        **kwargs,
    )


def test_template_expansion():
    """Section templates append their suffixes to the question."""
    print("=" * 60)
    print("TEST 1: Template expansion")
    print("=" * 60)

    generator = FollowupGeneratorService()

    assert generator.template_expansions("timeline", QUERY) == [
        "防衛費 増額 年表",
        "防衛費 増額 タイムライン",
        "防衛費 増額 経緯",
        "防衛費 増額 第16回 部会 議事要旨",
    ]
    assert generator.template_expansions("impact_analysis", QUERY) == [
        "防衛費 増額 影響",
        "防衛費 増額 効果",
    ]
    print("\n[PASS] Templates expanded")


def test_template_expansion_as_of_date():
    generator = FollowupGeneratorService()

    timeline = generator.template_expansions("timeline", QUERY, "2024-04-01")
    assert timeline[0] == "防衛費 増額 年表"
    assert timeline[2] == "防衛費 増額 経緯 2024-04-01"

    status = generator.template_expansions("current_status", QUERY, "2024-04-01")
    assert all(q.endswith(" 2024-04-01") for q in status)


def test_unknown_section_falls_back_to_question():
    generator = FollowupGeneratorService()
    assert generator.template_expansions("reasons_for_amendment", QUERY) == [QUERY]


def test_generate_keeps_template_order_on_ties():
    """Equally relevant, equally diverse candidates come out in input order."""
    queries = FollowupGeneratorService().generate(make_ctx(k=5))

    assert queries == [
        "防衛費 増額 年表",
        "防衛費 増額 タイムライン",
        "防衛費 増額 経緯",
        "防衛費 増額 第16回 部会 議事要旨",
    ]


def test_generate_respects_k():
    queries = FollowupGeneratorService().generate(make_ctx(k=2))
    assert queries == ["防衛費 増額 年表", "防衛費 増額 タイムライン"]


def test_generate_default_k_from_config():
    generator = FollowupGeneratorService(FollowupConfig(k=1))
    assert generator.generate(make_ctx()) == ["防衛費 増額 年表"]


def test_generate_excludes_seen_queries():
    state = OrchestratorState()
    state.add_query("防衛費 増額 年表")

    queries = FollowupGeneratorService().generate(make_ctx(state=state, k=5))

    assert "防衛費 増額 年表" not in queries
    assert queries == [
        "防衛費 増額 タイムライン",
        "防衛費 増額 経緯",
        "防衛費 増額 第16回 部会 議事要旨",
    ]


def test_generate_exact_duplicates_removed():
    """A base sub-query equal to a template expansion appears once."""
    queries = FollowupGeneratorService().generate(
        make_ctx(section="main_issues", base_subqueries=["防衛費 増額 論点"], k=10)
    )

    assert queries.count("防衛費 増額 論点") == 1
    assert len(queries) == len(set(queries))


def test_negative_hints_use_first_three_seen_domains():
    state = OrchestratorState()
    for domain in ["a.example", "b.example", "c.example", "d.example"]:
        state.add_domain(domain)

    queries = FollowupGeneratorService().generate(make_ctx(state=state, k=5))

    assert queries
    for q in queries:
        assert q.endswith(" -site:a.example -site:b.example -site:c.example")
        assert "d.example" not in q


def test_negative_hints_configurable():
    state = OrchestratorState()
    state.add_domain("a.example")
    state.add_domain("b.example")

    generator = FollowupGeneratorService(FollowupConfig(max_negative_hints=1))
    queries = generator.generate(make_ctx(state=state, k=1))

    assert queries == ["防衛費 増額 年表 -site:a.example"]


def test_entity_expansion_skips_used_and_records_new():
    """Expansions already emitted in the run are filtered; new ones are recorded."""
    print("\n" + "=" * 60)
    print("TEST: Entity expansion with used-entity tracking")
    print("=" * 60)

    entities = Entities(speakers=["岸田"], meetings=["予算委員会"])
    used = {"防衛費 増額 岸田"}

    queries = FollowupGeneratorService().generate(
        make_ctx(section="main_issues", entities=entities, used_entities=used, k=10)
    )

    assert "防衛費 増額 岸田" not in queries
    assert "防衛費 増額 予算委員会" in queries
    assert used == {
        "防衛費 増額 岸田",
        "防衛費 増額 予算委員会",
        "防衛費 増額 岸田 予算委員会",
    }
    print("\n[PASS] Used entities filtered and recorded")


def test_entity_expansion_meeting_preferring_sections_skip_speakers():
    generator = FollowupGeneratorService()
    entities = Entities(speakers=["岸田"], meetings=["予算委員会"])

    timeline = generator.entity_expansions("timeline", "Q", entities)
    assert timeline == ["Q 予算委員会", "Q 岸田 予算委員会"]

    issues = generator.entity_expansions("main_issues", "Q", entities)
    assert issues == ["Q 岸田", "Q 予算委員会", "Q 岸田 予算委員会"]


def test_entity_expansion_caps():
    generator = FollowupGeneratorService()
    entities = Entities(
        speakers=[f"s{i}" for i in range(1, 8)],
        meetings=["m1", "m2", "m3"],
    )

    out = generator.entity_expansions("main_issues", "Q", entities)

    assert out[:5] == ["Q s1", "Q s2", "Q s3", "Q s4", "Q s5"]
    assert out[5:8] == ["Q m1", "Q m2", "Q m3"]
    assert out[8:] == [
        "Q s1 m1", "Q s1 m2",
        "Q s2 m1", "Q s2 m2",
        "Q s3 m1", "Q s3 m2",
    ]


def test_tokenize_and_jaccard():
    assert tokenize("Defense a BUDGET, 2024") == {"defense", "budget", "2024"}
    assert tokenize("防衛費 増額 -site:example.com") == {"防衛費", "増額", "site", "example", "com"}
    assert jaccard("", "") == 0.0
    assert jaccard("aa bb", "bb aa") == 1.0
    assert jaccard("aa bb", "aa cc") == 1 / 3


def test_dedup_strings_keeps_first_occurrence():
    assert dedup_strings(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_dedup_by_jaccard():
    items = ["防衛費 増額 財源", "財源 防衛費 増額", "防衛費 影響"]
    assert dedup_by_jaccard(items, 0.7) == ["防衛費 増額 財源", "防衛費 影響"]


def test_mmr_prefers_relevance():
    selected = mmr_select(["foo bar", "防衛費 増額 財源"], QUERY, [], k=1)
    assert selected == ["防衛費 増額 財源"]


def test_mmr_prefers_diversity_after_first_pick():
    candidates = ["aa bb cc", "aa bb cc ee", "aa gg"]
    assert mmr_select(candidates, "aa bb", [], k=2) == ["aa bb cc", "aa gg"]


def test_mmr_tie_break_is_earliest_and_deterministic():
    candidates = ["xx yy", "zz ww", "vv uu"]
    first = mmr_select(candidates, "unrelated", [], k=3)
    second = mmr_select(candidates, "unrelated", [], k=3)

    assert first == candidates
    assert first == second


def test_mmr_penalizes_site_filter_on_seen_domain():
    candidates = ["aa site:x.com", "aa site:y.com"]
    assert mmr_select(candidates, "aa", ["x.com"], k=1) == ["aa site:y.com"]


def test_mmr_k_larger_than_pool():
    assert mmr_select(["aa", "bb"], "aa", [], k=10) == ["aa", "bb"]
    assert mmr_select([], "aa", [], k=3) == []


def test_inject_negative_hints():
    assert inject_negative_hints("q", []) == "q"
    assert inject_negative_hints("q", ["a.com", "b.com"]) == "q -site:a.com -site:b.com"


def main():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("FOLLOW-UP GENERATION TESTS")
    print("=" * 60)

    for name, fn in list(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()

    print("\n" + "=" * 60)
    print("ALL TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
