from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

from .states import Message


DEFAULT_HISTORY_LIMIT = 20


@dataclass(frozen=True)
class HistoryEntry:
    speaker: str
    text: str


def window_history(messages: Sequence[Message], limit: int = DEFAULT_HISTORY_LIMIT) -> List[HistoryEntry]:
    """Return the most recent ``limit`` messages as speaker-tagged entries, oldest first."""
    if limit <= 0:
        return []
    return [HistoryEntry(m.speaker, m.text) for m in messages[-limit:]]


def build_context(
    messages: Sequence[Message],
    prompt: str,
    prompt_speaker: str,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[HistoryEntry]:
    """Windowed history followed by the prompt, attributed to whoever said it."""
    entries = window_history(messages, limit)
    entries.append(HistoryEntry(prompt_speaker, prompt))
    return entries


def to_contents(entries: Iterable[HistoryEntry]) -> List[Dict[str, Any]]:
    # The endpoint sees a single "user" voice; the speaker survives as a text prefix
    return [
        {"role": "user", "parts": [{"text": f"{e.speaker}: {e.text}"}]}
        for e in entries
    ]
