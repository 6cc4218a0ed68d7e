"""Per-word outcomes of a practice session and the ledger that holds them."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from scriptcoach.exceptions import PerformanceLogError


class WordStatus(str, enum.Enum):
    CORRECT = "correct"
    HESITATED = "hesitated"
    MISSED = "missed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class WordPerformance:
    word: str
    index: int
    status: WordStatus
    time_to_speak_ms: Optional[int] = None
    was_prompted: bool = False
    wrong_words_said: Optional[tuple[str, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "word": self.word,
            "index": self.index,
            "status": self.status.value,
            "time_to_speak_ms": self.time_to_speak_ms,
            "was_prompted": self.was_prompted,
            "wrong_words_said": list(self.wrong_words_said) if self.wrong_words_said else None,
        }


class PerformanceLog:
    """
    Append-only ledger with exactly one entry per script index.

    Entries must arrive in index order starting at 0; anything else raises
    ``PerformanceLogError`` so a bookkeeping bug can never produce a report
    with gaps or duplicates.
    """

    def __init__(self) -> None:
        self._entries: list[WordPerformance] = []

    @property
    def next_index(self) -> int:
        return len(self._entries)

    def append(self, entry: WordPerformance) -> None:
        if entry.index != self.next_index:
            raise PerformanceLogError(
                f"expected an entry for index {self.next_index}, got {entry.index}"
            )
        self._entries.append(entry)

    def extend(self, entries: list[WordPerformance]) -> None:
        """Append several entries atomically: all of them or none."""
        expected = self.next_index
        for offset, entry in enumerate(entries):
            if entry.index != expected + offset:
                raise PerformanceLogError(
                    f"expected an entry for index {expected + offset}, got {entry.index}"
                )
        self._entries.extend(entries)

    def entries(self) -> list[WordPerformance]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[WordPerformance]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> WordPerformance:
        return self._entries[index]
