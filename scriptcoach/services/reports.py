"""Persist practice attempts and their finished performance reports."""

from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import asdict
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from scriptcoach.config import MatcherConfig, settings
from scriptcoach.database import async_session
from scriptcoach.models import PracticeAttempt, WordResult
from scriptcoach.services.finalizer import finalize
from scriptcoach.services.performance import WordPerformance
from scriptcoach.services.problem_words import update_problem_words
from scriptcoach.services.scoring import summarise_performance
from scriptcoach.services.state import new_session_state
from scriptcoach.services.word_alignment import tokenize_script

logger = logging.getLogger(__name__)

# Attempts with an open WebSocket session in this process.
_live_attempts: set[int] = set()


def mark_live(attempt_id: int) -> None:
    _live_attempts.add(attempt_id)


def mark_done(attempt_id: int) -> None:
    _live_attempts.discard(attempt_id)


def config_from_json(raw: str) -> MatcherConfig:
    data = json.loads(raw)
    data["inflection_suffixes"] = tuple(data.get("inflection_suffixes", ()))
    return MatcherConfig(**data)


def config_to_json(config: MatcherConfig) -> str:
    return json.dumps(asdict(config))


async def save_session_report(
    db: AsyncSession,
    attempt: PracticeAttempt,
    entries: list[WordPerformance],
    stop_reason: str,
    duration_seconds: float,
) -> dict[str, Any]:
    """Store the word results and summary of a finished attempt."""
    summary = summarise_performance(entries, duration_seconds)

    for entry in entries:
        db.add(
            WordResult(
                attempt_id=attempt.id,
                word_index=entry.index,
                word=entry.word,
                status=entry.status.value,
                time_to_speak_ms=entry.time_to_speak_ms,
                was_prompted=entry.was_prompted,
                wrong_words_json=(
                    json.dumps(list(entry.wrong_words_said)) if entry.wrong_words_said else None
                ),
            )
        )

    attempt.ended_at = dt.datetime.utcnow()
    attempt.stop_reason = stop_reason
    attempt.accuracy = summary["accuracy"]
    attempt.wpm_estimate = summary["wpm"]
    attempt.duration_seconds = round(duration_seconds, 1)
    attempt.summary_json = json.dumps(summary)
    await db.commit()

    await update_problem_words(db, entries)

    logger.info(
        "Saved attempt=%s (%s): accuracy=%.1f, %d words",
        attempt.id, stop_reason, summary["accuracy"], len(entries),
    )
    return summary


async def load_report(db: AsyncSession, attempt_id: int) -> Optional[dict[str, Any]]:
    result = await db.execute(
        select(PracticeAttempt)
        .where(PracticeAttempt.id == attempt_id)
        .options(selectinload(PracticeAttempt.word_results))
    )
    attempt = result.scalar_one_or_none()
    if attempt is None:
        return None

    return {
        "attempt_id": attempt.id,
        "language": attempt.language,
        "locale": attempt.locale,
        "preset": attempt.preset,
        "word_count": attempt.word_count,
        "stop_reason": attempt.stop_reason,
        "finished": attempt.ended_at is not None,
        "summary": json.loads(attempt.summary_json) if attempt.summary_json else None,
        "words": [
            {
                "index": r.word_index,
                "word": r.word,
                "status": r.status,
                "time_to_speak_ms": r.time_to_speak_ms,
                "was_prompted": r.was_prompted,
                "wrong_words_said": json.loads(r.wrong_words_json) if r.wrong_words_json else None,
            }
            for r in attempt.word_results
        ],
    }


async def close_abandoned_attempts(
    session_factory: Optional[async_sessionmaker] = None,
) -> int:
    """
    Finalize attempts that were created but never finished, e.g. because the
    client never connected or the server restarted mid-session.  Every word
    of such an attempt ends up missed.
    """
    cutoff = dt.datetime.utcnow() - dt.timedelta(minutes=settings.abandoned_attempt_minutes)
    closed = 0
    async with (session_factory or async_session)() as db:
        result = await db.execute(
            select(PracticeAttempt)
            .where(PracticeAttempt.ended_at.is_(None))
            .where(PracticeAttempt.started_at < cutoff)
        )
        for attempt in result.scalars().all():
            if attempt.id in _live_attempts:
                continue
            state = new_session_state(tokenize_script(attempt.script_text), 0)
            await save_session_report(db, attempt, finalize(state), "abandoned", 0.0)
            closed += 1

    if closed:
        logger.info("Closed %d abandoned attempt(s)", closed)
    return closed
