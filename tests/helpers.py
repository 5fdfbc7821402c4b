"""Test doubles shared across the suite."""

import asyncio
from datetime import datetime, timedelta, timezone

from minds.states import Message


T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_messages(n, speakers=("GPT", "Gemini")):
    """Alternating log of ``n`` messages with texts m1..mn."""
    return [
        Message(
            id=i,
            speaker=speakers[(i - 1) % 2],
            text=f"m{i}",
            created_at=T0 + timedelta(seconds=i),
        )
        for i in range(1, n + 1)
    ]


async def until(predicate, rounds=200):
    """Yield to the loop until ``predicate()`` holds."""
    for _ in range(rounds):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def recording_sleep():
    """Stand-in for asyncio.sleep that records delays and returns at once."""
    delays = []

    async def sleep(delay):
        delays.append(delay)
        await asyncio.sleep(0)

    sleep.delays = delays
    return sleep


class FakeInvoker:
    """Scripted invoker: replies '<persona> says #n'; optional gate, fixed reply and failure."""

    def __init__(self, fail_with=None, gate=None, reply=None):
        self.calls = []
        self.reply = reply
        self.fail_with = fail_with
        self.gate = gate

    async def invoke(self, persona, prompt, history):
        self.calls.append({"persona": persona.id, "prompt": prompt, "history": tuple(history)})
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        if self.reply is not None:
            return self.reply
        return f"{persona.id} says #{len(self.calls)}"
