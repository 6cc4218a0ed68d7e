"""Tokenising, normalising and scoring words of a practice script.

Recognisers return lowercase words without punctuation, while scripts are
written with capitals, punctuation and accented letters.  Everything is
compared in a canonical form: lowercase, diacritics stripped, letters and
digits only.

The similarity score runs for every recognised word against up to
``1 + lookahead`` reference words while the user is speaking, and sticks to
exact, stem and positional comparisons.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass

from scriptcoach.config import MatcherConfig
from scriptcoach.exceptions import InvalidScriptError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Fillers people use while searching for the next word.
FILLER_WORDS = frozenset({
    "um", "uh", "eh", "er", "ah", "hmm", "mhm", "like", "youknow",
})


@dataclass(frozen=True)
class ReferenceToken:
    index: int
    raw_text: str
    normalized_text: str


def normalise(text: str) -> str:
    """Lower-case, strip diacritics and drop everything but letters and digits."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(
        ch
        for ch in decomposed
        if not unicodedata.combining(ch) and unicodedata.category(ch)[0] in ("L", "N")
    )


def tokenize_script(script: str) -> list[ReferenceToken]:
    """Split a script on whitespace into indexed reference tokens.

    Raises ``InvalidScriptError`` when nothing is left to speak.
    """
    fragments = [f for f in _WHITESPACE.split(script or "") if f]
    if not fragments:
        raise InvalidScriptError("The script does not contain any words.")
    tokens = [
        ReferenceToken(index=i, raw_text=raw, normalized_text=normalise(raw))
        for i, raw in enumerate(fragments)
    ]
    logger.debug("Tokenised script into %d words", len(tokens))
    return tokens


def _is_inflection(stem: str, word: str, suffixes: tuple[str, ...]) -> bool:
    """True if *word* is *stem* plus a suffix, e.g. "run" -> "running"."""
    rest = word[len(stem):]
    if rest in suffixes:
        return True
    # doubled final consonant: "stop" -> "stopped"
    return len(rest) > 1 and rest[0] == stem[-1] and rest[1:] in suffixes


def similarity(a: str, b: str, config: MatcherConfig | None = None) -> float:
    """
    Score two *normalised* words between 0 and 1.

    Rules, first hit wins:
      1. identical words score 1.0;
      2. short words (<= ``short_token_max_len``) must be identical, else 0.0;
      3. a prefix relation within ``prefix_min_ratio`` of each other's length,
         or one where the remainder is an inflection suffix, scores
         ``prefix_score`` (plurals, tenses: "plan" / "plans", "run" / "running");
      4. otherwise the share of equal characters at equal positions,
         measured against the longer word.
    """
    cfg = config or MatcherConfig()
    if a == b:
        return 1.0
    if len(a) <= cfg.short_token_max_len or len(b) <= cfg.short_token_max_len:
        return 0.0

    longer = max(len(a), len(b))
    shorter = min(len(a), len(b))
    ratio = shorter / longer

    if cfg.min_length_ratio and ratio < cfg.min_length_ratio:
        return 0.0

    stem, word = (a, b) if len(a) <= len(b) else (b, a)
    if word.startswith(stem) and (
        ratio >= cfg.prefix_min_ratio or _is_inflection(stem, word, cfg.inflection_suffixes)
    ):
        return cfg.prefix_score

    matches = sum(1 for x, y in zip(a, b) if x == y)
    score = matches / longer
    if cfg.positional_floor and score < cfg.positional_floor:
        return 0.0
    return score


def is_match(spoken: str, expected: str, config: MatcherConfig | None = None) -> bool:
    """True when *spoken* is close enough to *expected* to count as saying it."""
    cfg = config or MatcherConfig()
    return similarity(spoken, expected, cfg) >= cfg.match_threshold


def is_filler_word(word: str) -> bool:
    return normalise(word) in FILLER_WORDS


@dataclass(frozen=True)
class RecognizedToken:
    """One word emitted by the speech recognition source."""

    text: str
    is_final: bool = True
    arrival_seq: int = 0
