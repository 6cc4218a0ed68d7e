"""Summarise a finished practice session.

Accuracy weighs every script word by how it was delivered: a clean delivery
counts fully, a hesitated one (slow, or only after the word was revealed)
counts ``hesitated_credit``, and skipped or missed words count nothing.
"""

from __future__ import annotations

from typing import Any, Optional

from scriptcoach.config import settings
from scriptcoach.services.performance import WordPerformance, WordStatus


def summarise_performance(
    entries: list[WordPerformance],
    duration_seconds: float,
    hesitated_credit: Optional[float] = None,
) -> dict[str, Any]:
    """
    Build the report handed to persistence and to the client.

    Returns:
      {
        "accuracy": float,          # 0-100
        "counts": {"correct": int, "hesitated": int, "skipped": int, "missed": int},
        "total_words": int,
        "words_spoken": int,
        "wpm": float,
        "missed_words": [str], "skipped_words": [str], "prompted_words": [str],
        "wrong_attempts": [{"word": str, "attempts": [str]}],
        "encouragement": str,
      }
    """
    if not entries:
        return _empty_summary()

    credit = settings.hesitated_credit if hesitated_credit is None else hesitated_credit

    counts = {status.value: 0 for status in WordStatus}
    for entry in entries:
        counts[entry.status.value] += 1

    total = len(entries)
    accuracy = (counts["correct"] + counts["hesitated"] * credit) / total * 100
    spoken = counts["correct"] + counts["hesitated"]
    wpm = (spoken / duration_seconds * 60) if duration_seconds > 0 else 0

    return {
        "accuracy": round(accuracy, 1),
        "counts": counts,
        "total_words": total,
        "words_spoken": spoken,
        "wpm": round(wpm, 1),
        "missed_words": [e.word for e in entries if e.status is WordStatus.MISSED],
        "skipped_words": [e.word for e in entries if e.status is WordStatus.SKIPPED],
        "prompted_words": [e.word for e in entries if e.was_prompted],
        "wrong_attempts": [
            {"word": e.word, "attempts": list(e.wrong_words_said)}
            for e in entries
            if e.wrong_words_said
        ],
        "encouragement": _pick_encouragement(accuracy, spoken / total),
    }


def _pick_encouragement(accuracy: float, reached_ratio: float) -> str:
    if accuracy >= 95:
        return "Flawless delivery. You know this script by heart!"
    if accuracy >= 80:
        return "Strong run. Just a few words to polish."
    if reached_ratio >= 0.5:
        return "Good progress. Focus on the words you needed prompts for."
    if reached_ratio > 0:
        return "Nice start. Try the next part again once the opening feels solid."
    return "Let's give it a first try together."


def _empty_summary() -> dict[str, Any]:
    return {
        "accuracy": 0,
        "counts": {status.value: 0 for status in WordStatus},
        "total_words": 0,
        "words_spoken": 0,
        "wpm": 0,
        "missed_words": [],
        "skipped_words": [],
        "prompted_words": [],
        "wrong_attempts": [],
        "encouragement": "Let's give it a first try together.",
    }
