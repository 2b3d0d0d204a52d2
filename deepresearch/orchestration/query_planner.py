"""Query planning interface.

The planner turns the user's question into base sub-queries that seed the
follow-up generator. Production planners are text-generation calls living
outside this package; they only need to implement ``Planner``. The
``KeywordPlanner`` here is an offline fallback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass
class QueryPlan:
    """
    A structured retrieval plan for a research question.
    """

    subqueries: list[str]
    """Base sub-queries, treated as opaque seed strings."""

    entities: dict[str, list[str]] = field(default_factory=dict)
    """Named entities by kind (e.g. 'speakers', 'topics')."""

    enabled_strategies: list[str] = field(default_factory=list)
    """Retrieval strategies the planner suggests."""

    confidence: float = 0.0
    """Planner confidence, 0-1."""

    complexity: str = "simple"
    """'simple', 'moderate' or 'complex'."""

    def to_dict(self) -> dict:
        """Convert plan to dictionary for serialization."""
        return {
            "subqueries": self.subqueries,
            "entities": self.entities,
            "enabled_strategies": self.enabled_strategies,
            "confidence": self.confidence,
            "complexity": self.complexity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> QueryPlan:
        """Create a QueryPlan from a dictionary (e.g. a planner's JSON output)."""
        subqueries = [q for q in data.get("subqueries", []) if isinstance(q, str) and q.strip()]
        confidence = data.get("confidence", 0.0)
        if not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
            logger.warning(f"Invalid plan confidence {confidence}, using 0.0")
            confidence = 0.0

        return cls(
            subqueries=subqueries,
            entities=data.get("entities", {}),
            enabled_strategies=data.get("enabled_strategies", []),
            confidence=float(confidence),
            complexity=data.get("complexity", "simple"),
        )


@runtime_checkable
class Planner(Protocol):
    """Protocol for query planners."""

    async def create_plan(self, query: str) -> QueryPlan:
        """
        Create a plan for a research question.

        Args:
            query: The user's question

        Returns:
            A QueryPlan with at least one sub-query
        """
        ...


# Japanese particles and English function words that carry no search signal
STOP_WORDS = {
    "の", "は", "が", "を", "に", "で", "と", "も", "へ", "や", "から", "まで",
    "について", "とは", "する", "した", "して", "ある", "いる", "こと", "もの",
    "the", "a", "an", "is", "are", "was", "were", "be", "of", "in", "for",
    "on", "with", "at", "by", "from", "as", "to", "and", "or", "what", "how",
    "why", "when", "who", "which", "about", "this", "that",
}


class KeywordPlanner(Planner):
    """
    Builds a plan from the question's keywords without any LLM call.

    Useful as a fallback or for offline runs.
    """

    def __init__(self, max_concepts: int = 10):
        self.max_concepts = max_concepts

    async def create_plan(self, query: str) -> QueryPlan:
        return self.create_default_plan(query)

    def create_default_plan(self, query: str) -> QueryPlan:
        """
        Create a plan from whitespace-separated keywords of the question.

        Args:
            query: The research question

        Returns:
            A QueryPlan whose sub-queries are the question itself and, when it
            differs, the question reduced to its keywords
        """
        words = [w.strip("?？.。,、!！\"'「」") for w in query.split()]
        concepts = [w for w in words if w and w.lower() not in STOP_WORDS]

        # Deduplicate while preserving order
        concepts = list(dict.fromkeys(concepts))[: self.max_concepts]

        subqueries = [query.strip()]
        keyword_query = " ".join(concepts)
        if keyword_query and keyword_query != subqueries[0]:
            subqueries.append(keyword_query)

        if len(concepts) <= 2:
            complexity = "simple"
        elif len(concepts) <= 5:
            complexity = "moderate"
        else:
            complexity = "complex"

        logger.info(f"Keyword plan: {len(subqueries)} subqueries, {len(concepts)} concepts")

        return QueryPlan(
            subqueries=subqueries,
            entities={"topics": concepts},
            enabled_strategies=["keyword"],
            confidence=0.5,
            complexity=complexity,
        )
