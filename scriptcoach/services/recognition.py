"""Boundary between the speech recognition source and a practice session.

The recogniser runs client-side and streams word batches.  Two of its habits
have to be absorbed here, before anything reaches the matcher:

  - interim results restate the whole utterance so far ("so", "so today",
    "so today we"), so only the newly appended words may be forwarded;
  - it stops on its own (silence, network hiccups) and has to be restarted,
    a bounded number of times, with a short fixed delay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from scriptcoach.config import settings
from scriptcoach.exceptions import SourceError, SourceFatalError, SourceTransientError
from scriptcoach.services.word_alignment import RecognizedToken

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Practice session interrupted, please retry."


def split_transcript(text: str) -> list[str]:
    return (text or "").split()


class UtteranceTracker:
    """
    Turn restated interim batches into a stream of new words.

    Within one utterance every batch is expected to extend the previous one;
    words past the already forwarded count are new.  A final batch closes the
    utterance.  Revisions of words that were already forwarded are not
    replayed.
    """

    def __init__(self) -> None:
        self._forwarded = 0
        self._seq = 0

    def accept(self, words: Iterable[str], final: bool) -> list[RecognizedToken]:
        words = [w for w in words if w and w.strip()]
        fresh = words[self._forwarded:]
        tokens = []
        for word in fresh:
            tokens.append(RecognizedToken(text=word, is_final=final, arrival_seq=self._seq))
            self._seq += 1

        if final:
            self._forwarded = 0
        else:
            self._forwarded = max(self._forwarded, len(words))
        return tokens

    def reset(self) -> None:
        """Forget the open utterance, e.g. after the recogniser restarted."""
        self._forwarded = 0


@dataclass(frozen=True)
class RestartDecision:
    restart: bool
    attempt: int
    delay_ms: int = 0


class SourceSupervisor:
    """Restart budget and error classification for one recognition source."""

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        delay_ms: Optional[int] = None,
        transient_kinds: Optional[frozenset[str]] = None,
    ) -> None:
        self.max_attempts = settings.max_restart_attempts if max_attempts is None else max_attempts
        self.delay_ms = settings.restart_delay_ms if delay_ms is None else delay_ms
        self.transient_kinds = transient_kinds or settings.transient_source_errors
        self.attempts = 0
        self.last_error: Optional[SourceError] = None

    def on_started(self) -> None:
        """The source is running again; the budget starts over."""
        self.attempts = 0

    def on_ended(self) -> RestartDecision:
        if self.attempts >= self.max_attempts:
            logger.warning(
                "Recognition source ended; restart budget (%d) exhausted", self.max_attempts
            )
            return RestartDecision(restart=False, attempt=self.attempts)
        self.attempts += 1
        logger.info(
            "Recognition source ended; restart %d/%d in %d ms",
            self.attempts, self.max_attempts, self.delay_ms,
        )
        return RestartDecision(restart=True, attempt=self.attempts, delay_ms=self.delay_ms)

    def classify(self, kind: str) -> SourceError:
        if kind in self.transient_kinds:
            return SourceTransientError(kind)
        return SourceFatalError(kind)

    def on_error(self, kind: str) -> None:
        """
        Swallow transient errors; raise ``SourceFatalError`` for the rest so
        the caller can report it to the user.
        """
        error = self.classify(kind)
        if isinstance(error, SourceTransientError):
            logger.debug("Ignoring transient recognition error %r", kind)
            return
        self.last_error = error
        logger.warning("Recognition source error %r", kind)
        raise error
