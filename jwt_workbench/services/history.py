"""Bounded, newest-first history of encoded tokens and its storage interface."""
from typing import Protocol, Sequence

from jwt_workbench.models.token import HistoryEntry

HISTORY_CAPACITY = 10


class HistoryStore(Protocol):
    async def load(self) -> list[HistoryEntry]:
        ...

    async def save(self, entries: Sequence[HistoryEntry]) -> None:
        ...

    async def clear(self) -> None:
        ...


def push_entry(
    entries: Sequence[HistoryEntry],
    entry: HistoryEntry,
    capacity: int = HISTORY_CAPACITY,
) -> list[HistoryEntry]:
    """Prepend entry, evicting the oldest entries beyond capacity."""
    return [entry, *entries][:capacity]


class MemoryHistoryStore:
    """Process-local store; each save replaces the whole sequence."""

    def __init__(self, entries: Sequence[HistoryEntry] = ()):
        self.entries: list[HistoryEntry] = list(entries)
        self.saves = 0

    async def load(self) -> list[HistoryEntry]:
        return list(self.entries)

    async def save(self, entries: Sequence[HistoryEntry]) -> None:
        self.entries = list(entries)[:HISTORY_CAPACITY]
        self.saves += 1

    async def clear(self) -> None:
        self.entries = []
