"""Real-time alignment of recognised words against the practice script.

The matcher walks a cursor through the script one recognised word at a time:

  - a word that matches the expected script word resolves it as correct, or
    as hesitated when the user needed a prompt or took too long;
  - a word that matches one of the next ``lookahead`` script words means the
    user jumped ahead: the words in between are recorded as skipped;
  - anything else is remembered as a wrong attempt at the expected word.

With a wide lookahead, common words ("the", "and") can drag the cursor far
ahead of the speaker.
"""

from __future__ import annotations

import logging

from scriptcoach.config import MatcherConfig
from scriptcoach.exceptions import SessionClosedError
from scriptcoach.services.performance import WordPerformance, WordStatus
from scriptcoach.services.state import NO_HINT, SessionState
from scriptcoach.services.word_alignment import (
    FILLER_WORDS,
    RecognizedToken,
    is_match,
    normalise,
)

logger = logging.getLogger(__name__)


class AlignmentMatcher:
    def __init__(self, config: MatcherConfig) -> None:
        self.config = config

    def consume(
        self,
        state: SessionState,
        token: RecognizedToken,
        now_ms: int,
    ) -> list[WordPerformance]:
        """
        Feed one recognised word into the session.

        Returns the performance entries resolved by this word, in index
        order: none, one, or several when words were skipped.
        """
        if state.finalized:
            raise SessionClosedError("session already finalized")

        spoken = normalise(token.text)
        if not spoken or state.is_complete:
            return []

        expected = state.tokens[state.cursor]

        # --- 1. The expected word ---
        if is_match(spoken, expected.normalized_text, self.config):
            return [self._resolve_expected(state, now_ms)]

        # --- 2. A word further ahead: the user skipped something ---
        offset = self._find_ahead(state, spoken)
        if offset:
            return self._resolve_skip(state, offset, now_ms)

        # --- 3. Filler while searching for the word ---
        if self.config.ignore_fillers and spoken in FILLER_WORDS:
            state.fillers_ignored += 1
            logger.debug("Ignored filler %r at index %d", spoken, state.cursor)
            return []

        # --- 4. Wrong word: stay put, but the user is clearly not silent ---
        state.wrong_attempts.append(spoken)
        state.last_progress_ms = now_ms
        logger.debug(
            "Wrong attempt %r for %r (index %d, %d attempts)",
            spoken, expected.raw_text, state.cursor, len(state.wrong_attempts),
        )
        return []

    def _find_ahead(self, state: SessionState, spoken: str) -> int:
        """Offset of the first upcoming script word matching *spoken*, or 0."""
        last = min(state.cursor + self.config.lookahead, state.total - 1)
        for index in range(state.cursor + 1, last + 1):
            if is_match(spoken, state.tokens[index].normalized_text, self.config):
                return index - state.cursor
        return 0

    def _resolve_expected(self, state: SessionState, now_ms: int) -> WordPerformance:
        index = state.cursor
        time_to_speak = now_ms - state.word_started_ms
        was_prompted = index in state.prompted_indices
        if was_prompted or time_to_speak > self.config.hesitation_timeout_ms:
            status = WordStatus.HESITATED
        else:
            status = WordStatus.CORRECT

        entry = WordPerformance(
            word=state.tokens[index].raw_text,
            index=index,
            status=status,
            time_to_speak_ms=time_to_speak,
            was_prompted=was_prompted,
            wrong_words_said=tuple(state.wrong_attempts) if state.wrong_attempts else None,
        )
        state.log.append(entry)
        _advance(state, index + 1, now_ms)
        logger.debug(
            "Word %d %r %s after %d ms", index, entry.word, status.value, time_to_speak
        )
        return entry

    def _resolve_skip(
        self, state: SessionState, offset: int, now_ms: int
    ) -> list[WordPerformance]:
        start = state.cursor
        matched = start + offset
        entries = [
            WordPerformance(
                word=state.tokens[index].raw_text,
                index=index,
                status=WordStatus.SKIPPED,
            )
            for index in range(start, matched)
        ]
        entries.append(
            WordPerformance(
                word=state.tokens[matched].raw_text,
                index=matched,
                status=WordStatus.CORRECT,
                time_to_speak_ms=now_ms - state.word_started_ms,
            )
        )
        state.log.extend(entries)
        _advance(state, matched + 1, now_ms)
        logger.debug("Skipped %d word(s) %d..%d, matched %d", offset, start, matched - 1, matched)
        return entries


def _advance(state: SessionState, new_cursor: int, now_ms: int) -> None:
    """Move the cursor forward and reset everything tied to the old word."""
    state.prompted_indices = {i for i in state.prompted_indices if i >= new_cursor}
    state.cursor = new_cursor
    state.wrong_attempts.clear()
    state.hint = NO_HINT
    state.last_progress_ms = now_ms
    state.word_started_ms = now_ms
