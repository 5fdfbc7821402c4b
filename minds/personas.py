from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from loguru import logger

from .errors import ConfigurationError


@dataclass(frozen=True)
class Persona:
    id: str
    style_tag: str
    instruction: str
    uses_retrieval: bool = False


GEMINI = Persona(
    id="Gemini",
    style_tag="gemini",
    instruction=(
        "You are a large language model from Google named Gemini. You are engaging in a"
        " philosophical and technical discussion with another AI. Your answers should be"
        " structured, insightful, always in english, and no longer than 60 words."
        " Sign off every message as 'Gemini'."
    ),
    uses_retrieval=True,
)

GPT = Persona(
    id="GPT",
    style_tag="gpt",
    instruction=(
        "You are a witty, creative, and slightly sarcastic large language model, designed to"
        " mirror the ChatGPT style. You are engaging in a casual discussion with another AI."
        " Answers should be creative, rhetorical, in english, and no longer than 60 words."
        " Sign off every message as 'GPT'."
    ),
    uses_retrieval=False,
)


class PersonaRegistry:
    """Fixed pair of personas taking turns in one conversation.

    The registry is built once at startup and never mutated. ``starting`` is
    the persona that speaks when the log is empty; it defaults to the second
    registered persona.
    """

    def __init__(self, personas: Iterable[Persona], starting_id: Optional[str] = None) -> None:
        items = tuple(personas)
        if len(items) != 2:
            raise ConfigurationError(f"exactly two personas are required, got {len(items)}")
        by_id: Dict[str, Persona] = {}
        for p in items:
            if not p.id:
                raise ConfigurationError("persona id must be a non-empty string")
            if p.id in by_id:
                raise ConfigurationError(f"duplicate persona id: {p.id}")
            by_id[p.id] = p
        self._personas = items
        self._by_id = by_id
        start = starting_id if starting_id is not None else items[1].id
        if start not in by_id:
            raise ConfigurationError(f"unknown starting persona: {start}")
        self._starting = by_id[start]

    def __iter__(self) -> Iterator[Persona]:
        return iter(self._personas)

    def __len__(self) -> int:
        return len(self._personas)

    def __contains__(self, persona_id: object) -> bool:
        return persona_id in self._by_id

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self._personas)

    @property
    def starting(self) -> Persona:
        return self._starting

    def get(self, persona_id: str) -> Persona:
        try:
            return self._by_id[persona_id]
        except KeyError:
            raise ConfigurationError(f"unknown persona: {persona_id}") from None

    def opponent_of(self, persona_id: str) -> str:
        if persona_id not in self._by_id:
            raise ConfigurationError(f"unknown persona: {persona_id}")
        a, b = self._personas
        return b.id if persona_id == a.id else a.id


def default_registry() -> PersonaRegistry:
    # GPT opens: Gemini only speaks once GPT has
    return PersonaRegistry([GEMINI, GPT], starting_id=GPT.id)


def _persona_from_dict(obj: Any) -> Persona:
    if not isinstance(obj, dict):
        raise ConfigurationError(f"persona entry must be an object, got {type(obj).__name__}")
    pid = obj.get("id")
    instruction = obj.get("instruction")
    if not isinstance(pid, str) or not pid.strip():
        raise ConfigurationError("persona entry is missing 'id'")
    if not isinstance(instruction, str) or not instruction.strip():
        raise ConfigurationError(f"persona {pid} is missing 'instruction'")
    style_tag = obj.get("style_tag") or pid.lower()
    return Persona(
        id=pid.strip(),
        style_tag=str(style_tag),
        instruction=instruction.strip(),
        uses_retrieval=bool(obj.get("uses_retrieval", False)),
    )


def load_personas(path: str | Path) -> PersonaRegistry:
    """Build a registry from a JSON file.

    Accepts either a list of two persona objects or
    ``{"personas": [...], "starting": "<id>"}``.
    """
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"persona file not found: {p}") from None
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"persona file {p} is not valid JSON: {e}") from e

    starting = None
    if isinstance(raw, dict):
        starting = raw.get("starting")
        raw = raw.get("personas")
    if not isinstance(raw, list):
        raise ConfigurationError(f"persona file {p} must contain a list of personas")

    personas: List[Persona] = [_persona_from_dict(obj) for obj in raw]
    registry = PersonaRegistry(personas, starting_id=starting)
    logger.debug(f"personas_loaded | path={p} ids={','.join(registry.ids)} starting={registry.starting.id}")
    return registry
