"""SQLAlchemy ORM models for practice attempts and their word results."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scriptcoach.database import Base


# ---------------------------------------------------------------------------
# Practice attempts & word results
# ---------------------------------------------------------------------------


class PracticeAttempt(Base):
    __tablename__ = "practice_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    script_text: Mapped[str] = mapped_column(Text, nullable=False)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False)
    language: Mapped[str] = mapped_column(String(20), nullable=False)
    locale: Mapped[str] = mapped_column(String(20), nullable=False)
    preset: Mapped[str] = mapped_column(String(30), nullable=False)
    config_json: Mapped[str] = mapped_column(Text, nullable=False)  # resolved MatcherConfig
    started_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    ended_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    stop_reason: Mapped[Optional[str]] = mapped_column(
        String(30), nullable=True
    )  # completed | stopped | disconnected | source_failed | abandoned
    accuracy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    wpm_estimate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration_seconds: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    summary_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    word_results: Mapped[list["WordResult"]] = relationship(
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="WordResult.word_index",
    )


class WordResult(Base):
    __tablename__ = "word_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    attempt_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("practice_attempts.id")
    )
    word_index: Mapped[int] = mapped_column(Integer, nullable=False)
    word: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # correct | hesitated | skipped | missed
    time_to_speak_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    was_prompted: Mapped[bool] = mapped_column(Boolean, default=False)
    wrong_words_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    attempt: Mapped["PracticeAttempt"] = relationship(back_populates="word_results")


# ---------------------------------------------------------------------------
# Problem words aggregate
# ---------------------------------------------------------------------------


class ProblemWord(Base):
    __tablename__ = "problem_words"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    word: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    last_seen_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    total_misses: Mapped[int] = mapped_column(Integer, default=0)  # missed or skipped
    total_hesitations: Mapped[int] = mapped_column(Integer, default=0)
    total_prompts: Mapped[int] = mapped_column(Integer, default=0)
    mastery_score: Mapped[float] = mapped_column(Float, default=0.0)
    # mastery_score: 0 = problem, +mastery_step per clean delivery, >=1.0 = mastered
