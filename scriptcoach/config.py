"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("SCRIPTCOACH_DATA_DIR", str(BASE_DIR / "data")))


@dataclass(frozen=True)
class MatcherConfig:
    """Thresholds for the alignment matcher and the hint scheduler.

    The presentation, practice and tracker flows all share one algorithm;
    they only differ in these numbers (see ``MATCHER_PRESETS``).
    """

    # --- Similarity scorer ---
    match_threshold: float = 0.5
    short_token_max_len: int = 2  # tokens this short must match exactly
    prefix_min_ratio: float = 0.7  # shorter/longer length ratio for stem credit
    prefix_score: float = 0.85
    # Suffixes that also earn stem credit below the length ratio ("run" / "running")
    inflection_suffixes: tuple[str, ...] = ("s", "es", "ed", "ing", "er", "ers", "ly")
    min_length_ratio: float = 0.0  # 0 disables the length gate
    positional_floor: float = 0.0  # 0 disables the positional floor

    # --- Matcher ---
    lookahead: int = 3
    hesitation_timeout_ms: int = 2500
    ignore_fillers: bool = False

    # --- Hint scheduler ---
    try_threshold_ms: int = 1500
    reveal_threshold_ms: int = 3000
    reveal_after_wrong_ms: int = 1000


MATCHER_PRESETS: dict[str, MatcherConfig] = {
    # Strict / compact / test presentation views
    "presentation": MatcherConfig(),
    # Shared practice-mode word matching: a little stricter on the cutoff,
    # more generous on stems.
    "practice": MatcherConfig(
        match_threshold=0.6,
        prefix_min_ratio=0.8,
        prefix_score=0.9,
        ignore_fillers=True,
    ),
    # Word tracker with hidden words: strict scoring, wider skip window.
    "tracker": MatcherConfig(
        match_threshold=0.75,
        short_token_max_len=3,
        prefix_min_ratio=0.95,
        prefix_score=0.95,
        inflection_suffixes=(),
        min_length_ratio=0.75,
        positional_floor=0.8,
        lookahead=5,
        hesitation_timeout_ms=1000,
        reveal_threshold_ms=2500,
    ),
}


def matcher_config(preset: str | None = None, **overrides) -> MatcherConfig:
    """Build a ``MatcherConfig`` from a named preset plus field overrides.

    Raises ``KeyError`` for an unknown preset and ``TypeError`` for an
    unknown override field or a value of the wrong type.
    """
    base = MATCHER_PRESETS[preset or settings.default_preset]
    if not overrides:
        return base
    checked = {
        name: _check_override(name, value, getattr(base, name, None))
        for name, value in overrides.items()
    }
    return replace(base, **checked)


def _check_override(name: str, value, current):
    if name not in MatcherConfig.__dataclass_fields__:
        raise TypeError(f"unknown matcher setting {name!r}")

    # bool before int: bool is a subclass of int
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(current, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(current, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(current, tuple):
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return tuple(value)
    raise TypeError(f"{name} expects {type(current).__name__}, got {value!r}")


@dataclass(frozen=True)
class Settings:
    # --- Database ---
    database_url: str = os.getenv(
        "SCRIPTCOACH_DB_URL", f"sqlite+aiosqlite:///{DATA_DIR / 'scriptcoach.db'}"
    )

    # --- Practice session ---
    default_preset: str = os.getenv("SCRIPTCOACH_PRESET", "presentation")
    default_language: str = os.getenv("SCRIPTCOACH_LANGUAGE", "en")
    tick_interval_ms: int = int(os.getenv("SCRIPTCOACH_TICK_INTERVAL_MS", "200"))

    # --- Recognition source restarts ---
    max_restart_attempts: int = 10
    restart_delay_ms: int = 300
    transient_source_errors: frozenset[str] = field(
        default_factory=lambda: frozenset({"no-speech", "aborted"})
    )

    # --- Housekeeping ---
    abandoned_attempt_minutes: int = int(os.getenv("SCRIPTCOACH_ABANDONED_MINUTES", "30"))
    sweep_interval_minutes: int = 5

    # --- Scoring ---
    hesitated_credit: float = 0.5  # hesitated words count half in accuracy

    # --- Problem words ---
    mastery_step: float = 0.34  # mastered after ~3 clean deliveries


settings = Settings()

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
