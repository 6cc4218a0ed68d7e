"""One recording attempt: matcher, hint scheduler and finalizer behind a
single owner.

``PracticeSession`` is the only object that mutates its ``SessionState``.
Recognised words (``consume``) and silence ticks (``tick``) must both be
called from the same event loop; the session runs its own tick task on that
loop between ``start()`` and ``stop()``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable, Optional

from scriptcoach.config import MatcherConfig, matcher_config, settings
from scriptcoach.services.finalizer import finalize
from scriptcoach.services.hints import HintScheduler
from scriptcoach.services.matcher import AlignmentMatcher
from scriptcoach.services.performance import WordPerformance
from scriptcoach.services.state import HintState, SessionState, new_session_state
from scriptcoach.services.word_alignment import RecognizedToken, tokenize_script

logger = logging.getLogger(__name__)

WordListener = Callable[[WordPerformance], None]
HintListener = Callable[[HintState], None]
CompleteListener = Callable[[list[WordPerformance]], None]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class PracticeSession:
    def __init__(
        self,
        script: str,
        config: Optional[MatcherConfig] = None,
        *,
        clock: Callable[[], int] = monotonic_ms,
        tick_interval_ms: Optional[int] = None,
        on_word_event: Optional[WordListener] = None,
        on_hint_changed: Optional[HintListener] = None,
        on_session_complete: Optional[CompleteListener] = None,
    ) -> None:
        self.config = config or matcher_config()
        self.tokens = tokenize_script(script)  # raises InvalidScriptError
        self.tick_interval_ms = tick_interval_ms or settings.tick_interval_ms

        self._clock = clock
        self._matcher = AlignmentMatcher(self.config)
        self._scheduler = HintScheduler(self.config)
        self._on_word_event = on_word_event
        self._on_hint_changed = on_hint_changed
        self._on_session_complete = on_session_complete

        self.started_ms = clock()
        self.state: SessionState = new_session_state(self.tokens, self.started_ms)
        self.report: Optional[list[WordPerformance]] = None
        self.stop_reason: Optional[str] = None
        self.duration_seconds: float = 0.0
        self._tick_task: Optional[asyncio.Task] = None

    # ---- Read-only views ----

    @property
    def cursor(self) -> int:
        return self.state.cursor

    @property
    def hint(self) -> HintState:
        return self.state.hint

    @property
    def is_closed(self) -> bool:
        return self.report is not None

    # ---- Mutators ----

    def consume(self, token: RecognizedToken) -> list[WordPerformance]:
        """Feed one recognised word. No-op once the session is stopped."""
        if self.is_closed:
            return []

        hint_before = self.state.hint
        resolved = self._matcher.consume(self.state, token, self._clock())

        for entry in resolved:
            self._emit_word(entry)
        if self.state.hint != hint_before:
            self._emit_hint(self.state.hint)

        if self.state.is_complete:
            self.stop("completed")
        return resolved

    def consume_batch(self, tokens: Iterable[RecognizedToken]) -> list[WordPerformance]:
        """Feed a batch of newly recognised words, in order."""
        resolved: list[WordPerformance] = []
        for token in tokens:
            resolved.extend(self.consume(token))
        return resolved

    def tick(self) -> Optional[HintState]:
        """Run one silence check. No-op once the session is stopped."""
        if self.is_closed:
            return None
        changed = self._scheduler.tick(self.state, self._clock())
        if changed is not None:
            self._emit_hint(changed)
        return changed

    def stop(self, reason: str = "stopped") -> list[WordPerformance]:
        """
        End the session: cancel ticks, close out unreached words as missed and
        emit the complete report.  Calling it again returns the same report.
        """
        if self.report is not None:
            return self.report

        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

        self.stop_reason = reason
        self.duration_seconds = max(self._clock() - self.started_ms, 0) / 1000
        self.report = finalize(self.state)
        logger.info(
            "Practice session %s: reached %d/%d words in %.1fs",
            reason, self.state.cursor, self.state.total, self.duration_seconds,
        )
        if self._on_session_complete:
            self._on_session_complete(self.report)
        return self.report

    # ---- Tick loop ----

    def start(self) -> Optional[asyncio.Task]:
        """Start ticking on the running event loop."""
        if self._tick_task is None and not self.is_closed:
            self._tick_task = asyncio.get_running_loop().create_task(self._tick_loop())
        return self._tick_task

    async def _tick_loop(self) -> None:
        interval = self.tick_interval_ms / 1000
        while not self.is_closed:
            await asyncio.sleep(interval)
            self.tick()

    # ---- Events ----

    def _emit_word(self, entry: WordPerformance) -> None:
        if self._on_word_event:
            self._on_word_event(entry)

    def _emit_hint(self, hint: HintState) -> None:
        if self._on_hint_changed:
            self._on_hint_changed(hint)
