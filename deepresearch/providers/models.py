"""Pydantic models for documents exchanged with search providers."""

from typing import Any

from pydantic import BaseModel, Field


class DocumentSource(BaseModel):
    """Which provider produced a document."""

    provider_id: str = Field(..., alias="providerId")
    type: str

    model_config = {"populate_by_name": True, "frozen": True}


class DocumentResult(BaseModel):
    """A normalized document returned by a provider.

    Instances are frozen. Anything that needs a different value (for example
    a missing ``source``) works on a copy via ``model_copy(update=...)``.
    """

    id: str
    title: str | None = None
    content: str = ""
    url: str | None = None
    date: str | None = None
    author: str | None = None
    score: float | None = None
    source: DocumentSource | None = None
    extras: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def provider_id(self) -> str:
        """Provider id from ``source``, or an empty string if unstamped."""
        return self.source.provider_id if self.source else ""


class ProviderQuery(BaseModel):
    """Structured query sent to every provider of one section/iteration."""

    original_question: str = Field(..., alias="originalQuestion")
    subqueries: list[str] = Field(default_factory=list)
    limit: int = 10
    seed_urls: list[str] | None = Field(None, alias="seedUrls")

    model_config = {"populate_by_name": True}


def evidence_key(doc: DocumentResult) -> str:
    """Canonical identity of a document: its URL, else ``providerId:documentId``."""
    if doc.url:
        return doc.url
    return f"{doc.provider_id}:{doc.id}"
