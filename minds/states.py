from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class EngineState(Enum):
    IDLE = "idle"
    THINKING = "thinking"
    STOPPED = "stopped"

    @property
    def status(self) -> str:
        return self.value


@dataclass(frozen=True)
class Message:
    id: int
    speaker: str
    text: str
    created_at: datetime
    style_tag: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "speaker": self.speaker,
            "message": self.text,
            "style_tag": self.style_tag,
            "timestamp": self.created_at.isoformat().replace("+00:00", "Z"),
        }


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only view handed to whatever renders the conversation."""

    messages: Tuple[Message, ...]
    status: str
    error: Optional[str]
    active: bool
