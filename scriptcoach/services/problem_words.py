"""Track words the user keeps stumbling over across practice sessions."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scriptcoach.config import settings
from scriptcoach.models import ProblemWord
from scriptcoach.services.performance import WordPerformance, WordStatus
from scriptcoach.services.word_alignment import normalise

_PROBLEM_STATUSES = (WordStatus.MISSED, WordStatus.SKIPPED, WordStatus.HESITATED)

logger = logging.getLogger(__name__)


async def update_problem_words(db: AsyncSession, entries: list[WordPerformance]) -> None:
    """Update the problem_words table from one finished session.

    - Words that were missed, skipped or hesitated over: upsert with increased
      counters, reset mastery_score to 0.
    - Words delivered cleanly that are already tracked: increase mastery_score
      by ``mastery_step``, once per session, unless the same word also
      tripped the user up elsewhere in this session.
    - Words reaching mastery_score >= 1.0 are removed.
    """
    now = dt.datetime.utcnow()

    # 1. Problem words
    problem_keys: set[str] = set()
    for entry in entries:
        if entry.status not in _PROBLEM_STATUSES and not entry.was_prompted:
            continue
        key = normalise(entry.word)
        if not key:
            continue
        problem_keys.add(key)
        result = await db.execute(select(ProblemWord).where(ProblemWord.word == key))
        agg = result.scalar_one_or_none()
        if agg is None:
            agg = ProblemWord(
                word=key,
                total_misses=0,
                total_hesitations=0,
                total_prompts=0,
                mastery_score=0.0,
            )
            db.add(agg)

        if entry.status in (WordStatus.MISSED, WordStatus.SKIPPED):
            agg.total_misses += 1
        elif entry.status is WordStatus.HESITATED:
            agg.total_hesitations += 1
        if entry.was_prompted:
            agg.total_prompts += 1
        agg.mastery_score = 0.0
        agg.last_seen_at = now
        await db.flush()

    # 2. Clean deliveries of tracked words
    seen: set[str] = set()
    for entry in entries:
        if entry.status is not WordStatus.CORRECT or entry.was_prompted:
            continue
        key = normalise(entry.word)
        if not key or key in seen or key in problem_keys:
            continue
        seen.add(key)

        result = await db.execute(select(ProblemWord).where(ProblemWord.word == key))
        agg = result.scalar_one_or_none()
        if agg:
            agg.mastery_score = round(agg.mastery_score + settings.mastery_step, 2)
            agg.last_seen_at = now

    await db.commit()

    # 3. Remove mastered words
    result = await db.execute(
        select(ProblemWord).where(ProblemWord.mastery_score >= 1.0)
    )
    mastered = result.scalars().all()
    for agg in mastered:
        logger.info(
            "Word mastered and removed: %r (misses=%d, hesitations=%d, prompts=%d)",
            agg.word, agg.total_misses, agg.total_hesitations, agg.total_prompts,
        )
        await db.delete(agg)
    if mastered:
        await db.commit()
