"""Mutable state of one practice session.

Everything the matcher and the hint scheduler need lives in a plain
``SessionState``.  Only the owning ``PracticeSession`` mutates it, through
``AlignmentMatcher.consume``, ``HintScheduler.tick`` and ``finalize``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional

from scriptcoach.services.performance import PerformanceLog
from scriptcoach.services.word_alignment import ReferenceToken


class HintPhase(str, enum.Enum):
    NONE = "none"
    TRYING = "trying"  # "try to recall the next word"
    SHOWING = "showing"  # the word is revealed


@dataclass(frozen=True)
class HintState:
    phase: HintPhase = HintPhase.NONE
    target_index: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {"phase": self.phase.value, "target_index": self.target_index}


NO_HINT = HintState()


@dataclass
class SessionState:
    tokens: list[ReferenceToken]
    cursor: int = 0
    log: PerformanceLog = field(default_factory=PerformanceLog)
    wrong_attempts: list[str] = field(default_factory=list)
    last_progress_ms: int = 0  # last match or wrong attempt; drives the silence clock
    word_started_ms: int = 0  # when the current word became the expected one
    hint: HintState = NO_HINT
    prompted_indices: set[int] = field(default_factory=set)
    fillers_ignored: int = 0
    finalized: bool = False

    @property
    def total(self) -> int:
        return len(self.tokens)

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.tokens)


def new_session_state(tokens: list[ReferenceToken], now_ms: int) -> SessionState:
    return SessionState(tokens=tokens, last_progress_ms=now_ms, word_started_ms=now_ms)
