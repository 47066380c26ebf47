"""Keyword rules that read a status out of free-text audit notes."""

from __future__ import annotations

import re

from src.core.types import EventStatus

# First matching row wins; substrings are matched case-insensitively.
NOTE_STATUS_RULES: tuple[tuple[EventStatus, tuple[str, ...]], ...] = (
    (EventStatus.ERROR, ("error", "failed", "declin")),
    (EventStatus.WARNING, ("warning", "retry")),
    (EventStatus.SUCCESS, ("completed", "successful", "paid")),
)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")

MAX_TITLE_LENGTH = 50


def note_status(content: str) -> EventStatus:
    """Map note text to an event status via ``NOTE_STATUS_RULES``."""
    lowered = content.lower()
    for status, keywords in NOTE_STATUS_RULES:
        if any(keyword in lowered for keyword in keywords):
            return status
    return EventStatus.INFO


def note_title(content: str) -> str:
    """First sentence of a note, truncated for display."""
    title = _SENTENCE_SPLIT.split(content, maxsplit=1)[0].strip() or content.strip()
    if len(title) > MAX_TITLE_LENGTH:
        return title[: MAX_TITLE_LENGTH - 3] + "..."
    return title
