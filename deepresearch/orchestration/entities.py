"""Entity extraction from retrieved documents."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import Entities

if TYPE_CHECKING:
    from ..providers import DocumentResult


def _text_value(extras: dict, name: str) -> str | None:
    value = extras.get(name)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def extract_entities(docs: list[DocumentResult]) -> Entities:
    """
    Collect speakers, parties and meetings from document extras.

    Providers that know these (e.g. parliamentary minutes) put them in
    ``extras["speaker"]``, ``extras["party"]`` and ``extras["meeting"]``.
    Values are kept unique in first-seen order.

    Args:
        docs: Documents gathered so far in this run

    Returns:
        Entities derived from the documents
    """
    speakers: dict[str, None] = {}
    parties: dict[str, None] = {}
    meetings: dict[str, None] = {}

    for doc in docs:
        extras = doc.extras or {}
        speaker = _text_value(extras, "speaker")
        if speaker:
            speakers.setdefault(speaker)
        party = _text_value(extras, "party")
        if party:
            parties.setdefault(party)
        meeting = _text_value(extras, "meeting")
        if meeting:
            meetings.setdefault(meeting)

    return Entities(
        speakers=list(speakers),
        parties=list(parties),
        meetings=list(meetings),
    )
