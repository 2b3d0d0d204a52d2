"""Diversified follow-up query generation for one section and iteration.

Candidates come from section templates, the planner's base sub-queries and
entities found so far. They are narrowed in a fixed order:

1. template expansion
2. base sub-queries
3. entity expansion (skipping expansions already used in this run)
4. exact dedup
5. near-duplicate dedup (token Jaccard)
6. exclusion of queries already sent in this run (bare or hinted)
7. greedy maximal marginal relevance (MMR) selection of up to k queries
8. ``-site:`` negative hints for the oldest seen domains
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config.loader import FollowupConfig
    from .models import Entities, FollowupContext

logger = logging.getLogger(__name__)


# Section key -> (suffix, append as-of date)
SECTION_TEMPLATES: dict[str, list[tuple[str, bool]]] = {
    "timeline": [
        ("年表", False),
        ("タイムライン", False),
        ("経緯", True),
        ("第16回 部会 議事要旨", False),
    ],
    "purpose_overview": [("目的", False), ("概要", False), ("趣旨", False), ("要綱", False)],
    "current_status": [("現在の審議状況", True), ("進捗", True), ("最新動向", True)],
    "key_points": [("重要ポイント", False), ("要点", False), ("ポイント", False)],
    "background": [("背景", False), ("経緯", False), ("狙い", False)],
    "main_issues": [("論点", False), ("課題", False), ("争点", False)],
    "impact_analysis": [("影響", False), ("効果", False)],
    "past_debates_summary": [("国会議事録", False), ("質疑応答", False)],
    "status_notes": [("注意点", True), ("確認メモ", True)],
    "related_links": [("公式", False), ("一次情報", False), ("準一次情報", False)],
}

# Sections biased toward institutional (meeting) rather than personal queries
MEETING_PREFERRING_SECTIONS = frozenset({"timeline", "past_debates_summary"})

_TOKEN_RE = re.compile(r"[^\W_]+")


def tokenize(text: str) -> set[str]:
    """Lower-cased letter/digit runs of at least two characters."""
    return {token for token in _TOKEN_RE.findall(text.lower()) if len(token) >= 2}


def jaccard_tokens(a: set[str], b: set[str]) -> float:
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def jaccard(a: str, b: str) -> float:
    """Jaccard similarity of two strings' token sets (0.0 when both are empty)."""
    return jaccard_tokens(tokenize(a), tokenize(b))


def dedup_strings(items: list[str]) -> list[str]:
    """Drop exact repeats, keeping first occurrences in order."""
    return list(dict.fromkeys(items))


def dedup_by_jaccard(items: list[str], threshold: float) -> list[str]:
    """Greedily drop items whose similarity to an already kept item reaches threshold."""
    kept: list[str] = []
    kept_tokens: list[set[str]] = []
    for item in items:
        tokens = tokenize(item)
        if any(jaccard_tokens(tokens, other) >= threshold for other in kept_tokens):
            logger.debug(f"Near duplicate dropped: {item}")
            continue
        kept.append(item)
        kept_tokens.append(tokens)
    return kept


def mmr_select(
    candidates: list[str],
    user_query: str,
    seen_domains: list[str],
    k: int,
    mmr_lambda: float = 0.6,
    domain_alpha: float = 0.2,
) -> list[str]:
    """
    Greedy maximal marginal relevance selection.

    Each round picks the candidate maximizing
    ``lambda * rel(q) - (1 - lambda) * max(max_sim_to_selected, alpha * domain_flag)``
    where ``rel`` is Jaccard similarity to the user query and ``domain_flag``
    is 1 when the candidate carries a ``site:`` filter for a seen domain.
    Ties go to the earliest candidate.

    Args:
        candidates: Deduplicated candidate queries, in priority order
        user_query: The original question
        seen_domains: Domains already retrieved in this run
        k: Maximum number of queries to return
        mmr_lambda: Relevance weight
        domain_alpha: Weight of the seen-domain penalty

    Returns:
        Up to k queries in selection order
    """
    query_tokens = tokenize(user_query)
    pool = [
        (
            candidate,
            tokenize(candidate),
            1.0 if any(f"site:{d}" in candidate for d in seen_domains) else 0.0,
        )
        for candidate in candidates
    ]
    selected: list[tuple[str, set[str]]] = []

    while pool and len(selected) < k:
        best_idx = 0
        best_val = float("-inf")
        for i, (_, tokens, domain_flag) in enumerate(pool):
            relevance = jaccard_tokens(tokens, query_tokens)
            diversity = max((jaccard_tokens(tokens, s) for _, s in selected), default=0.0)
            value = mmr_lambda * relevance - (1 - mmr_lambda) * max(
                diversity, domain_alpha * domain_flag
            )
            if value > best_val:
                best_val = value
                best_idx = i

        candidate, tokens, _ = pool.pop(best_idx)
        selected.append((candidate, tokens))
        logger.debug(f"MMR picked ({best_val:.3f}): {candidate}")

    return [candidate for candidate, _ in selected]


def inject_negative_hints(query: str, domains: list[str]) -> str:
    """Append ``-site:domain`` exclusions to a query."""
    if not domains:
        return query
    negative = " ".join(f"-site:{d}" for d in domains)
    return f"{query} {negative}".strip()


class FollowupGeneratorService:
    """
    Produces up to k diversified, non-repeating queries for a section.

    The service reads the run's OrchestratorState but never writes to it;
    the orchestrator records dispatched queries itself. The only thing
    updated in place is ``FollowupContext.used_entities``.
    """

    def __init__(self, config: FollowupConfig | None = None):
        """
        Initialize the generator.

        Args:
            config: Follow-up configuration (k, MMR weights, caps)
        """
        if config is None:
            from ..config.loader import FollowupConfig
            config = FollowupConfig()

        self.config = config

    def generate(self, ctx: FollowupContext) -> list[str]:
        """Run the candidate pipeline and return the final queries."""
        k = ctx.k if ctx.k is not None else self.config.k

        candidates: list[str] = []
        candidates.extend(self.template_expansions(ctx.section_key, ctx.user_query, ctx.as_of_date))
        candidates.extend(ctx.base_subqueries)

        if ctx.entities is not None:
            expansions = self.entity_expansions(ctx.section_key, ctx.user_query, ctx.entities)
            if ctx.used_entities is not None:
                expansions = [e for e in expansions if e not in ctx.used_entities]
                ctx.used_entities.update(expansions)
            candidates.extend(expansions)

        negative = ctx.state.seen_domains[: self.config.max_negative_hints]
        seen = ctx.state.seen_query_strings

        unique = dedup_strings(candidates)
        unique = dedup_by_jaccard(unique, self.config.near_duplicate_threshold)
        # Stale if already sent bare or with the current hints
        unique = [
            q for q in unique
            if q not in seen and inject_negative_hints(q, negative) not in seen
        ]

        selected = mmr_select(
            unique,
            ctx.user_query,
            ctx.state.seen_domains,
            k,
            self.config.mmr_lambda,
            self.config.domain_alpha,
        )

        queries = [inject_negative_hints(q, negative) for q in selected]

        logger.debug(
            f"[{ctx.section_key}] iter={ctx.iteration} "
            f"{len(candidates)} candidates -> {len(unique)} fresh -> {len(queries)} queries"
        )
        return queries

    def template_expansions(
        self,
        section: str,
        query: str,
        as_of_date: str | None = None,
    ) -> list[str]:
        """Section-specific suffixes appended to the question."""
        templates = SECTION_TEMPLATES.get(section)
        if not templates:
            return [query]

        date_part = f" {as_of_date}" if as_of_date else ""
        return [
            f"{query} {suffix}{date_part if dated else ''}"
            for suffix, dated in templates
        ]

    def entity_expansions(
        self,
        section: str,
        query: str,
        entities: Entities,
    ) -> list[str]:
        """Question combined with speakers, meetings and a few speaker x meeting pairs."""
        cfg = self.config
        out: list[str] = []

        if section not in MEETING_PREFERRING_SECTIONS:
            for speaker in entities.speakers[: cfg.max_entity_speakers]:
                out.append(f"{query} {speaker}")

        for meeting in entities.meetings[: cfg.max_entity_meetings]:
            out.append(f"{query} {meeting}")

        for speaker in entities.speakers[: cfg.cross_speakers]:
            for meeting in entities.meetings[: cfg.cross_meetings]:
                out.append(f"{query} {speaker} {meeting}")

        return out
