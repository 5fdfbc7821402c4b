from __future__ import annotations


class MindsError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(MindsError):
    """Bad persona setup or missing credential. Never retried."""


class TransportError(MindsError):
    """Non-2xx response or network failure."""


class EmptyResponseError(MindsError):
    """Well-formed HTTP response without candidate text."""


class InvocationError(MindsError):
    """Every attempt for a turn failed."""

    def __init__(self, persona_id: str, reason: BaseException | str | None) -> None:
        self.persona_id = persona_id
        self.reason = reason
        super().__init__(f"Failed to get a reply from {persona_id}. {reason}")
