from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from minds.config import Settings
from minds.errors import ConfigurationError
from minds.llm import GeminiInvoker
from minds.manager import TurnScheduler
from minds.personas import PersonaRegistry, default_registry, load_personas
from minds.states import EngineSnapshot


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Let two Gemini personas debate each other")
    p.add_argument("--personas", type=str, help="Path to a JSON file defining the two personas")
    p.add_argument("--max-messages", type=int, default=None, help="Stop after this many messages (default: run until Ctrl-C)")
    p.add_argument("--output", type=str, help="Write the transcript as JSON to this path on exit")
    p.add_argument("--log-level", type=str, default=None, help="Log level for stderr (default: MINDS_LOG_LEVEL or INFO)")
    return p.parse_args(argv)


class TerminalView:
    """Prints each new message once; stops the engine at the message cap."""

    def __init__(self, max_messages: Optional[int] = None) -> None:
        self.max_messages = max_messages
        self.engine: Optional[TurnScheduler] = None
        self._shown = 0
        self._status = ""
        self._error: Optional[str] = None

    def __call__(self, snap: EngineSnapshot) -> None:
        for msg in snap.messages[self._shown:]:
            print(f"\n{msg.speaker}: {msg.text}", flush=True)
        self._shown = len(snap.messages)
        if snap.status != self._status:
            self._status = snap.status
            if snap.status == "thinking":
                print("\nThinking...", flush=True)
        if snap.error and snap.error != self._error:
            self._error = snap.error
            print(f"\n⚠️ {snap.error}", file=sys.stderr, flush=True)
        if (
            self.engine is not None
            and snap.active
            and self.max_messages is not None
            and self._shown >= self.max_messages
        ):
            self.engine.stop()


def build_registry(path: Optional[str]) -> PersonaRegistry:
    if path:
        return load_personas(path)
    return default_registry()


def write_transcript(out: Path, registry: PersonaRegistry, engine: TurnScheduler) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(
        json.dumps(
            {
                "personas": list(registry.ids),
                "error": engine.error,
                "conversation": [m.to_dict() for m in engine.messages],
            },
            ensure_ascii=False,
            indent=2,
        ),
        encoding="utf-8",
    )
    logger.info(f"Transcript written to {out}")


async def run(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    registry = build_registry(args.personas)

    async with GeminiInvoker(settings, registry) as invoker:
        engine = TurnScheduler(registry, invoker, settings=settings)
        view = TerminalView(max_messages=args.max_messages)
        view.engine = engine
        engine.subscribe(view)

        logger.info(f"Personas: {', '.join(registry.ids)} | starting={registry.starting.id}")
        logger.info(f"Model: {settings.model} | max_messages={args.max_messages}")
        engine.start()
        try:
            await engine.wait_until_stopped()
        except asyncio.CancelledError:
            # Ctrl-C arrives here as cancellation of the main task
            logger.info("Conversation interrupted by user")
        finally:
            await engine.aclose()

        if args.output:
            write_transcript(Path(args.output), registry, engine)

        return 1 if engine.error else 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    level = (args.log_level or Settings.from_env().log_level).upper()
    logger.remove()
    logger.add(sys.stderr, level=level, colorize=True, format="{time:HH:mm:ss} | {level} | {message}")

    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except KeyboardInterrupt:
        logger.info("Conversation interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
