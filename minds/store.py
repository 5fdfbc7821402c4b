from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from .states import Message


class ConversationStore:
    """Append-only, ordered log of produced messages."""

    def __init__(self) -> None:
        self._messages: List[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def append(self, message: Message) -> None:
        if not message.text:
            raise ValueError("message text must be non-empty")
        last = self.last
        if last is not None and message.id <= last.id:
            raise ValueError(f"message id {message.id} does not follow {last.id}")
        self._messages.append(message)
