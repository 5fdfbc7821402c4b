from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from .config import Settings
from .errors import ConfigurationError, EmptyResponseError
from .personas import Persona, PersonaRegistry
from .states import EngineSnapshot, EngineState, Message
from .store import ConversationStore


SEED_PROMPT = "Start a discussion about digital consciousness and AI creativity."


class Invoker(Protocol):
    async def invoke(self, persona: Persona, prompt: str, history: Sequence[Message]) -> str: ...


Listener = Callable[[EngineSnapshot], None]


class TurnScheduler:
    """Drives the unattended dialogue one turn at a time.

    While active and idle, a single pacing timer waits (a short opening beat
    on an empty log, otherwise a random 3-5 s) and then starts a turn. Only
    one turn is ever in flight: entry is guarded on ``EngineState``, not on
    the timer. ``stop()`` cancels the pending timer but lets an in-flight call
    finish; its reply is dropped if the engine was stopped meanwhile. Any
    invoker failure or unusable reply parks the engine in ``STOPPED`` until
    ``start()``.

    ``start``/``stop``/``toggle`` must be called from inside the running loop.
    """

    def __init__(
        self,
        registry: PersonaRegistry,
        invoker: Invoker,
        store: Optional[ConversationStore] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.registry = registry
        self.invoker = invoker
        self.store = store if store is not None else ConversationStore()
        self.settings = settings or Settings()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = EngineState.IDLE
        self._active = False
        self._error: Optional[str] = None
        self._timer: Optional[asyncio.Task] = None
        self._turn: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []
        self._halted = asyncio.Event()
        self._halted.set()

    # -- observable surface -------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def active(self) -> bool:
        return self._active

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.store.messages

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            messages=self.store.messages,
            status=self._state.status,
            error=self._error,
            active=self._active,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback fired after every state change; returns an unsubscribe."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._active and self._state is not EngineState.THINKING:
            self._halted.set()
        else:
            self._halted.clear()
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("listener_failed")

    # -- control ------------------------------------------------------------

    def start(self) -> None:
        if self._state is EngineState.STOPPED:
            self._state = EngineState.IDLE
            self._error = None
        if self._active:
            return
        self._active = True
        logger.info(f"engine_start | messages={len(self.store)}")
        self._notify()
        self._schedule_next()

    def stop(self) -> None:
        was_active = self._active
        self._active = False
        self._cancel_timer()
        if was_active:
            logger.info(f"engine_stop | state={self._state.value} messages={len(self.store)}")
            self._notify()

    def toggle(self) -> bool:
        if self._active:
            self.stop()
        else:
            self.start()
        return self._active

    async def wait_until_stopped(self) -> None:
        """Block until the engine is inactive and no turn is in flight."""
        await self._halted.wait()

    async def aclose(self) -> None:
        self.stop()
        if self._turn is not None and not self._turn.done():
            await self._turn

    # -- pacing -------------------------------------------------------------

    def _next_delay(self) -> float:
        if len(self.store) == 0:
            return self.settings.opening_delay
        return self._rng.uniform(self.settings.min_delay, self.settings.max_delay)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _schedule_next(self) -> None:
        if not self._active or self._state is not EngineState.IDLE:
            return
        self._cancel_timer()
        delay = self._next_delay()
        logger.debug(f"turn_scheduled | delay={delay:.2f}s")
        self._timer = asyncio.create_task(self._pace(delay))

    async def _pace(self, delay: float) -> None:
        await self._sleep(delay)
        self._timer = None
        self._turn = asyncio.create_task(self.take_turn())

    # -- turns --------------------------------------------------------------

    def _pick_turn(self, history: Sequence[Message]) -> Tuple[Persona, str]:
        if not history:
            return self.registry.starting, SEED_PROMPT
        last = history[-1]
        return self.registry.get(self.registry.opponent_of(last.speaker)), last.text

    def _next_id(self, created_at: datetime) -> int:
        stamp = int(created_at.timestamp() * 1000)
        last = self.store.last
        return stamp if last is None or stamp > last.id else last.id + 1

    def _fail(self, persona_id: str, error: BaseException) -> None:
        self._error = str(error)
        self._state = EngineState.STOPPED
        self._active = False
        self._cancel_timer()
        logger.error(f"turn_failed | persona={persona_id} | {error}")
        self._notify()

    async def take_turn(self) -> None:
        if not self._active:
            logger.debug("turn_skipped | engine inactive")
            return
        if self._state is not EngineState.IDLE:
            logger.debug(f"turn_skipped | state={self._state.value}")
            return

        history = self.store.messages
        try:
            persona, prompt = self._pick_turn(history)
        except ConfigurationError as e:
            self._fail(history[-1].speaker if history else "?", e)
            return

        self._state = EngineState.THINKING
        self._error = None
        logger.info(f"turn_start | persona={persona.id} t={len(history) + 1}")
        self._notify()

        try:
            text = await self.invoker.invoke(persona, prompt, history)
        except Exception as e:
            self._fail(persona.id, e)
            return

        if not self._active:
            self._state = EngineState.IDLE
            logger.info(f"turn_discarded | persona={persona.id} | engine stopped mid-call")
            self._notify()
            return

        created_at = self._clock()
        try:
            if not isinstance(text, str) or not text:
                raise EmptyResponseError(f"Empty reply from {persona.id}.")
            message = Message(
                id=self._next_id(created_at),
                speaker=persona.id,
                text=text,
                created_at=created_at,
                style_tag=persona.style_tag,
            )
            self.store.append(message)
        except (EmptyResponseError, ValueError) as e:
            self._fail(persona.id, e)
            return
        self._state = EngineState.IDLE
        self._log_turn(message)
        self._notify()
        self._schedule_next()

    def _log_turn(self, message: Message) -> None:
        raw = message.text or ""
        snippet = raw if len(raw) <= 400 else raw[:400] + '...'
        one_line = ' '.join(snippet.split())
        logger.info(f"turn_done | spk={message.speaker} t={len(self.store)} | msg='{one_line}'")
