"""Silence-driven memory prompts.

While the user is recording, a periodic tick measures how long it has been
since the last progress (a matched word or a wrong attempt) and escalates:

    none --(try_threshold_ms)--> trying --(reveal)--> showing

``reveal`` is short when the user has been saying wrong words for the
expected one and longer when they are simply thinking.  Revealing a word
flags its index as prompted; the matcher reads that flag when the word is
finally spoken and records it as hesitated.
"""

from __future__ import annotations

import logging
from typing import Optional

from scriptcoach.config import MatcherConfig
from scriptcoach.services.state import NO_HINT, HintPhase, HintState, SessionState

logger = logging.getLogger(__name__)


class HintScheduler:
    def __init__(self, config: MatcherConfig) -> None:
        self.config = config

    def reveal_after_ms(self, state: SessionState) -> int:
        if state.wrong_attempts:
            return self.config.reveal_after_wrong_ms
        return self.config.reveal_threshold_ms

    def tick(self, state: SessionState, now_ms: int) -> Optional[HintState]:
        """
        Advance the hint by at most one phase.

        Returns the new ``HintState`` when the phase changed, else None.
        Ticks after the script is done or the session is finalized do nothing.
        """
        if state.finalized or state.is_complete:
            return None

        hint = state.hint
        if hint.phase is not HintPhase.NONE and hint.target_index != state.cursor:
            # Late tick for a word that has already been resolved.
            state.hint = NO_HINT
            return state.hint

        silence = now_ms - state.last_progress_ms

        if hint.phase is HintPhase.NONE:
            if silence >= self.config.try_threshold_ms:
                state.hint = HintState(HintPhase.TRYING, state.cursor)
                logger.debug("Hint: try to recall word %d after %d ms", state.cursor, silence)
                return state.hint
            return None

        if hint.phase is HintPhase.TRYING and silence >= self.reveal_after_ms(state):
            state.hint = HintState(HintPhase.SHOWING, state.cursor)
            state.prompted_indices.add(state.cursor)
            logger.debug("Hint: revealing word %d after %d ms", state.cursor, silence)
            return state.hint

        return None
