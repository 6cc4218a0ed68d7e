"""Exception types raised by the practice engine and its integration layer."""

from __future__ import annotations


class ScriptCoachError(Exception):
    """Base class for every error raised by scriptcoach."""


class InvalidScriptError(ScriptCoachError):
    """The reference script contains no speakable tokens."""


class SessionClosedError(ScriptCoachError):
    """A practice session was mutated after it had been finalized."""


class PerformanceLogError(ScriptCoachError):
    """An entry would break the index order of the performance log."""


class SourceError(ScriptCoachError):
    """An error reported by the speech recognition source."""

    def __init__(self, kind: str, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message or f"speech recognition error: {kind}")


class SourceTransientError(SourceError):
    """No-speech / aborted signals. Swallowed without any state change."""


class SourceFatalError(SourceError):
    """Any other recognition failure. Surfaced to the host application."""
