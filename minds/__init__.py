"""
Autonomous two-persona chat engine backed by Gemini.

Modules:
- personas: Persona definitions + two-party registry
- history: bounded, speaker-tagged context for each call
- llm: Gemini generateContent client with retry/backoff
- manager: TurnScheduler state machine driving the dialogue
- states: EngineState, Message, EngineSnapshot
- store: append-only conversation log
"""

from .errors import (
    MindsError,
    ConfigurationError,
    TransportError,
    EmptyResponseError,
    InvocationError,
)
from .config import Settings
from .personas import Persona, PersonaRegistry, default_registry, load_personas
from .states import EngineState, Message, EngineSnapshot
from .store import ConversationStore
from .llm import GeminiInvoker
from .manager import TurnScheduler, SEED_PROMPT

__version__ = "0.1.0"

__all__ = [
    "MindsError",
    "ConfigurationError",
    "TransportError",
    "EmptyResponseError",
    "InvocationError",
    "Settings",
    "Persona",
    "PersonaRegistry",
    "default_registry",
    "load_personas",
    "EngineState",
    "Message",
    "EngineSnapshot",
    "ConversationStore",
    "GeminiInvoker",
    "TurnScheduler",
    "SEED_PROMPT",
]
