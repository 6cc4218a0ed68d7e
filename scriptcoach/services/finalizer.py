"""Close out a practice session into a complete performance report."""

from __future__ import annotations

import logging

from scriptcoach.exceptions import SessionClosedError
from scriptcoach.services.performance import WordPerformance, WordStatus
from scriptcoach.services.state import NO_HINT, SessionState

logger = logging.getLogger(__name__)


def finalize(state: SessionState) -> list[WordPerformance]:
    """
    Mark every word the user never reached as missed and return the log.

    The result holds exactly one entry per script index, ordered by index.
    A session can only be finalized once.
    """
    if state.finalized:
        raise SessionClosedError("session already finalized")

    missed = [
        WordPerformance(word=token.raw_text, index=token.index, status=WordStatus.MISSED)
        for token in state.tokens[state.cursor:]
        if token.index >= state.log.next_index
    ]
    state.log.extend(missed)

    state.finalized = True
    state.hint = NO_HINT
    state.prompted_indices.clear()
    state.wrong_attempts.clear()

    logger.debug(
        "Finalized session: %d words, %d reached, %d missed",
        state.total, state.cursor, len(missed),
    )
    return state.log.entries()
