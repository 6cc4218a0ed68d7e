"""
Tests for the practice session controller: events, completion and the tick
loop lifecycle.
"""

import asyncio

import pytest

from scriptcoach.config import MatcherConfig
from scriptcoach.exceptions import InvalidScriptError, SessionClosedError
from scriptcoach.services.finalizer import finalize
from scriptcoach.services.performance import WordStatus
from scriptcoach.services.practice_session import PracticeSession
from scriptcoach.services.state import HintPhase
from scriptcoach.services.word_alignment import RecognizedToken

TEN_WORDS = "one two three four five six seven eight nine ten"


def _tokens(text):
    return [RecognizedToken(w) for w in text.split()]


class Recorder:
    def __init__(self):
        self.words = []
        self.hints = []
        self.reports = []

    def session(self, script, clock, **kwargs):
        return PracticeSession(
            script,
            kwargs.pop("config", None) or MatcherConfig(),
            clock=clock,
            on_word_event=self.words.append,
            on_hint_changed=self.hints.append,
            on_session_complete=self.reports.append,
            **kwargs,
        )


def test_invalid_script_blocks_start(clock):
    with pytest.raises(InvalidScriptError):
        PracticeSession("   ", clock=clock)


class TestCompleteness:
    def test_perfect_delivery(self, clock):
        rec = Recorder()
        session = rec.session(TEN_WORDS, clock)
        for token in _tokens(TEN_WORDS):
            clock.advance(300)
            session.consume(token)

        assert len(rec.reports) == 1
        report = rec.reports[0]
        assert [e.index for e in report] == list(range(10))
        assert all(e.status is WordStatus.CORRECT for e in report)
        assert not any(e.was_prompted for e in report)
        assert session.stop_reason == "completed"

    def test_early_stop_marks_the_rest_missed(self, clock):
        rec = Recorder()
        session = rec.session(TEN_WORDS, clock)
        session.consume_batch(_tokens("one two three four"))
        report = session.stop()

        assert len(report) == 10
        assert [e.index for e in report] == list(range(10))
        assert all(e.status is WordStatus.CORRECT for e in report[:4])
        assert all(e.status is WordStatus.MISSED for e in report[4:])
        assert all(e.was_prompted is False for e in report[4:])
        assert report[4].time_to_speak_ms is None

    def test_stop_before_any_word(self, clock):
        session = PracticeSession("alpha beta", clock=clock)
        report = session.stop("disconnected")
        assert [e.status for e in report] == [WordStatus.MISSED, WordStatus.MISSED]
        assert session.stop_reason == "disconnected"

    def test_finalize_only_once(self):
        session = PracticeSession("alpha beta", clock=lambda: 0)
        session.stop()
        with pytest.raises(SessionClosedError):
            finalize(session.state)


class TestEvents:
    def test_word_events_in_index_order(self, clock):
        rec = Recorder()
        session = rec.session("alpha beta gamma delta", clock)
        session.consume_batch(_tokens("alpha gamma"))

        assert [(e.index, e.status) for e in rec.words] == [
            (0, WordStatus.CORRECT),
            (1, WordStatus.SKIPPED),
            (2, WordStatus.CORRECT),
        ]
        assert session.cursor == 3

    def test_hint_events_on_every_transition(self, clock):
        rec = Recorder()
        session = rec.session("alpha beta", clock)

        clock.advance(1500)
        session.tick()
        clock.advance(1500)
        session.tick()
        session.tick()  # nothing new
        session.consume(RecognizedToken("alpha"))

        assert [h.phase for h in rec.hints] == [
            HintPhase.TRYING,
            HintPhase.SHOWING,
            HintPhase.NONE,
        ]
        assert rec.words[0].status is WordStatus.HESITATED
        assert rec.words[0].was_prompted is True

    def test_wrong_attempt_does_not_emit_hint(self, clock):
        rec = Recorder()
        session = rec.session("alpha beta", clock)
        session.consume(RecognizedToken("zebra"))
        assert rec.hints == []
        assert rec.words == []

    def test_complete_emitted_once(self, clock):
        rec = Recorder()
        session = rec.session("alpha", clock)
        session.consume(RecognizedToken("alpha"))
        session.stop()
        session.stop("stopped")
        assert len(rec.reports) == 1
        assert session.stop_reason == "completed"


class TestAfterStop:
    def test_input_after_stop_is_ignored(self, clock):
        rec = Recorder()
        session = rec.session("alpha beta", clock)
        session.stop()
        assert session.consume(RecognizedToken("alpha")) == []
        clock.advance(10_000)
        assert session.tick() is None
        assert rec.words == []
        assert rec.hints == []


class TestTickLoop:
    def test_ticks_run_without_input(self):
        async def scenario():
            clock_ms = [0]
            rec = Recorder()
            session = rec.session("alpha beta", lambda: clock_ms[0], tick_interval_ms=5)
            clock_ms[0] = 1500
            session.start()
            await asyncio.sleep(0.1)
            session.stop()
            return rec

        rec = asyncio.run(scenario())
        assert rec.hints[0].phase is HintPhase.TRYING

    def test_no_ticks_after_stop(self):
        async def scenario():
            session = PracticeSession("alpha beta", clock=lambda: 0, tick_interval_ms=5)
            calls = []
            real_tick = session.tick

            def counting_tick():
                calls.append(1)
                return real_tick()

            session.tick = counting_tick
            task = session.start()
            await asyncio.sleep(0.05)
            session.stop()
            count_at_stop = len(calls)
            await asyncio.sleep(0.05)
            return task, count_at_stop, len(calls)

        task, at_stop, later = asyncio.run(scenario())
        assert at_stop > 0
        assert later == at_stop
        assert task.cancelled() or task.done()

    def test_start_after_stop_does_nothing(self):
        async def scenario():
            session = PracticeSession("alpha", clock=lambda: 0)
            session.stop()
            return session.start()

        assert asyncio.run(scenario()) is None
