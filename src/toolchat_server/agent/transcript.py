"""Ordered conversation history for agent sessions."""

import itertools
from typing import Iterable, Iterator, Sequence, overload

from toolchat_server.agent.types import (
    CompletionMetrics,
    Message,
    MessageRole,
    TranscriptEntry,
)


class Transcript(Sequence[TranscriptEntry]):
    """An append-only, ordered list of transcript entries.

    Entries receive a monotonically increasing id when they are appended.
    Ids keep increasing across a reset so an id is never reused within
    one transcript.
    """

    def __init__(self, entries: Iterable[TranscriptEntry] = ()) -> None:
        self._entries: list[TranscriptEntry] = list(entries)
        self._index_by_id = {entry.id: i for i, entry in enumerate(self._entries)}
        next_id = max(self._index_by_id, default=0) + 1
        self._ids = itertools.count(next_id)

    @overload
    def __getitem__(self, index: int) -> TranscriptEntry: ...

    @overload
    def __getitem__(self, index: slice) -> list[TranscriptEntry]: ...

    def __getitem__(self, index):
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"Transcript({len(self._entries)} entries)"

    @property
    def messages(self) -> list[Message]:
        """All messages in conversation order."""
        return [entry.message for entry in self._entries]

    def get(self, entry_id: int) -> TranscriptEntry | None:
        """Look up an entry by its id."""
        index = self._index_by_id.get(entry_id)
        return None if index is None else self._entries[index]

    def append(
        self, message: Message, metrics: CompletionMetrics | None = None
    ) -> TranscriptEntry:
        """Append a message and return the new entry.

        Raises:
            ValueError: If metrics are given for a non-assistant message
        """
        if metrics is not None and message.role != MessageRole.ASSISTANT:
            raise ValueError("Only assistant entries can carry metrics")
        entry = TranscriptEntry(id=next(self._ids), message=message, metrics=metrics)
        self._index_by_id[entry.id] = len(self._entries)
        self._entries.append(entry)
        return entry

    def filter_by_role(self, role: MessageRole) -> list[TranscriptEntry]:
        return [entry for entry in self._entries if entry.message.role == role]

    def first_message(self, role: MessageRole) -> TranscriptEntry | None:
        return next((e for e in self._entries if e.message.role == role), None)

    def last_message(self, role: MessageRole) -> TranscriptEntry | None:
        return next(
            (e for e in reversed(self._entries) if e.message.role == role), None
        )

    def copy(self) -> "Transcript":
        """Return an independent copy that shares the id sequence position."""
        duplicate = Transcript(self._entries)
        duplicate._ids = itertools.count(self._peek_next_id())
        return duplicate

    # Owner-only mutation used by the session for rollback and reset.

    def _truncate(self, count: int) -> None:
        for entry in self._entries[count:]:
            del self._index_by_id[entry.id]
        del self._entries[count:]

    def _clear(self) -> None:
        self._entries.clear()
        self._index_by_id.clear()

    def _peek_next_id(self) -> int:
        next_id = next(self._ids)
        self._ids = itertools.count(next_id)
        return next_id
