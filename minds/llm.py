from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import Settings
from .errors import EmptyResponseError, InvocationError, TransportError
from .history import build_context, to_contents
from .personas import Persona, PersonaRegistry
from .states import Message


RETRIEVAL_TOOL: Dict[str, Any] = {"google_search": {}}


def extract_text(body: Any) -> Optional[str]:
    """Pull ``candidates[0].content.parts[0].text`` out of a response body."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def strip_signature(text: str, persona_id: str) -> str:
    # Single strip only; a doubled signature keeps its second copy
    prefix = f"{persona_id}: "
    return text[len(prefix):] if text.startswith(prefix) else text


class GeminiInvoker:
    """Calls Gemini ``generateContent`` for one persona's turn.

    Each call is retried with exponential backoff on transport failures and on
    responses that carry no candidate text. Only :class:`InvocationError`
    escapes once the retry budget is spent.
    """

    def __init__(
        self,
        settings: Settings,
        registry: PersonaRegistry,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self._api_key = settings.require_api_key()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(settings.timeout))
        self._sleep = sleep

    async def __aenter__(self) -> "GeminiInvoker":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def build_payload(self, persona: Persona, prompt: str, history: Sequence[Message]) -> Dict[str, Any]:
        entries = build_context(
            history,
            prompt,
            self.registry.opponent_of(persona.id),
            limit=self.settings.history_limit,
        )
        payload: Dict[str, Any] = {
            "contents": to_contents(entries),
            "systemInstruction": {"parts": [{"text": persona.instruction}]},
            "generationConfig": {"temperature": self.settings.temperature},
        }
        if persona.uses_retrieval:
            payload["tools"] = [dict(RETRIEVAL_TOOL)]
        return payload

    async def _attempt(self, persona: Persona, payload: Dict[str, Any]) -> str:
        try:
            response = await self._client.post(
                self.settings.endpoint,
                params={"key": self._api_key},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        if not response.is_success:
            raise TransportError(f"HTTP error: {response.status_code}")
        try:
            body = response.json()
        except ValueError as e:
            raise EmptyResponseError("Response body is not valid JSON.") from e
        text = strip_signature(extract_text(body) or "", persona.id)
        if not text:
            raise EmptyResponseError("Empty response from the model.")
        return text

    def _log_retry(self, persona: Persona, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"llm_retry | persona={persona.id} attempt={retry_state.attempt_number}/"
            f"{self.settings.max_retries} delay={delay:.1f}s | {exc}"
        )

    async def invoke(self, persona: Persona, prompt: str, history: Sequence[Message]) -> str:
        payload = self.build_payload(persona, prompt, history)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_retries),
            wait=wait_exponential(multiplier=self.settings.backoff_seconds),
            retry=retry_if_exception_type((TransportError, EmptyResponseError)),
            sleep=self._sleep,
            before_sleep=lambda state: self._log_retry(persona, state),
        )
        t0 = time.perf_counter()
        text = ""
        try:
            async for attempt in retrying:
                with attempt:
                    logger.debug(
                        f"llm_attempt | persona={persona.id} "
                        f"attempt={attempt.retry_state.attempt_number}/{self.settings.max_retries}"
                    )
                    text = await self._attempt(persona, payload)
        except RetryError as err:
            reason = err.last_attempt.exception()
            dt = time.perf_counter() - t0
            logger.error(f"llm_failed | persona={persona.id} attempts={self.settings.max_retries} dt={dt:.2f}s | {reason}")
            raise InvocationError(persona.id, reason) from reason
        dt = time.perf_counter() - t0
        logger.info(f"llm_call | persona={persona.id} contents={len(payload['contents'])} dt={dt:.2f}s")
        return text
