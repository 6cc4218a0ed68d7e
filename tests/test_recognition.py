"""
Tests for the recognition boundary: interim batch de-duplication, restart
budget, error classification and locale mapping.
"""

import pytest

from scriptcoach.exceptions import SourceFatalError, SourceTransientError
from scriptcoach.services.locale import DEFAULT_LOCALE, recognition_locale
from scriptcoach.services.practice_session import PracticeSession
from scriptcoach.services.recognition import (
    SourceSupervisor,
    UtteranceTracker,
    split_transcript,
)
from scriptcoach.services.word_alignment import RecognizedToken


def _texts(tokens):
    return [t.text for t in tokens]


class TestUtteranceTracker:
    def test_interim_batches_forward_only_new_words(self):
        tracker = UtteranceTracker()
        assert _texts(tracker.accept(["so"], final=False)) == ["so"]
        assert _texts(tracker.accept(["so", "today"], final=False)) == ["today"]
        assert _texts(tracker.accept(["so", "today", "we"], final=False)) == ["we"]
        assert tracker.accept(["so", "today", "we"], final=True) == []

    def test_final_closes_the_utterance(self):
        tracker = UtteranceTracker()
        tracker.accept(["hello", "there"], final=True)
        assert _texts(tracker.accept(["hello"], final=False)) == ["hello"]

    def test_shrinking_interim_does_not_replay(self):
        tracker = UtteranceTracker()
        tracker.accept(["good", "morning", "all"], final=False)
        assert tracker.accept(["good", "morning"], final=False) == []
        assert _texts(tracker.accept(["good", "morning", "all", "of"], final=False)) == ["of"]

    def test_arrival_sequence_increases(self):
        tracker = UtteranceTracker()
        first = tracker.accept(["a", "b"], final=False)
        second = tracker.accept(["a", "b", "c"], final=True)
        assert [t.arrival_seq for t in first + second] == [0, 1, 2]
        assert second[0].is_final is True
        assert first[0].is_final is False

    def test_blank_words_are_dropped(self):
        tracker = UtteranceTracker()
        assert _texts(tracker.accept(["", "  ", "hi"], final=True)) == ["hi"]

    def test_reset_forgets_open_utterance(self):
        tracker = UtteranceTracker()
        tracker.accept(["one", "two"], final=False)
        tracker.reset()
        assert _texts(tracker.accept(["three"], final=False)) == ["three"]


def test_split_transcript():
    assert split_transcript("  so   today\twe ") == ["so", "today", "we"]
    assert split_transcript("") == []
    assert split_transcript(None) == []


class TestRepeatedWords:
    def test_same_word_twice_in_final_results_is_a_wrong_attempt(self, clock):
        session = PracticeSession("hello world", clock=clock)
        tracker = UtteranceTracker()
        session.consume_batch(tracker.accept(["hello"], final=True))
        session.consume_batch(tracker.accept(["hello"], final=True))

        assert session.cursor == 1
        assert session.state.wrong_attempts == ["hello"]

    def test_restated_interim_words_are_consumed_once(self, clock):
        session = PracticeSession("hello hello world", clock=clock)
        tracker = UtteranceTracker()
        session.consume_batch(tracker.accept(["hello"], final=False))
        session.consume_batch(tracker.accept(["hello", "hello"], final=False))
        session.consume_batch(tracker.accept(["hello", "hello"], final=True))

        assert session.cursor == 2
        assert session.state.wrong_attempts == []


class TestSourceSupervisor:
    def test_restart_budget(self):
        supervisor = SourceSupervisor(max_attempts=10, delay_ms=300)
        decisions = [supervisor.on_ended() for _ in range(10)]
        assert all(d.restart for d in decisions)
        assert [d.attempt for d in decisions] == list(range(1, 11))
        assert all(d.delay_ms == 300 for d in decisions)

        final = supervisor.on_ended()
        assert final.restart is False

    def test_successful_start_resets_budget(self):
        supervisor = SourceSupervisor(max_attempts=2)
        supervisor.on_ended()
        supervisor.on_ended()
        supervisor.on_started()
        assert supervisor.on_ended().restart is True

    def test_defaults_come_from_settings(self):
        supervisor = SourceSupervisor()
        assert supervisor.max_attempts == 10
        assert supervisor.delay_ms == 300

    @pytest.mark.parametrize("kind", ["no-speech", "aborted"])
    def test_transient_errors_are_swallowed(self, kind):
        supervisor = SourceSupervisor()
        assert isinstance(supervisor.classify(kind), SourceTransientError)
        supervisor.on_error(kind)
        assert supervisor.last_error is None

    @pytest.mark.parametrize("kind", ["network", "not-allowed", "audio-capture"])
    def test_other_errors_are_fatal(self, kind):
        supervisor = SourceSupervisor()
        with pytest.raises(SourceFatalError) as excinfo:
            supervisor.on_error(kind)
        assert excinfo.value.kind == kind
        assert supervisor.last_error is excinfo.value


class TestRecognitionLocale:
    @pytest.mark.parametrize(
        "lang, expected",
        [
            ("en", "en-US"),
            ("sv", "sv-SE"),
            ("SV", "sv-SE"),
            ("no", "nb-NO"),
            ("zh", "zh-CN"),
            ("pt_BR", "pt-BR"),
            ("en-GB", "en-GB"),
            ("xx", "xx-XX"),
        ],
    )
    def test_mapping(self, lang, expected):
        assert recognition_locale(lang) == expected

    def test_empty_falls_back_to_default(self):
        assert recognition_locale("") == DEFAULT_LOCALE
        assert recognition_locale(None) == DEFAULT_LOCALE


def test_recognized_token_defaults():
    token = RecognizedToken("word")
    assert token.is_final is True
    assert token.arrival_seq == 0
