"""Tests for minds.history: windowing and wire-format flattening."""

from minds.history import HistoryEntry, build_context, to_contents, window_history

from tests.helpers import make_messages


class TestWindowHistory:
    def test_short_log_kept_whole(self):
        entries = window_history(make_messages(3))
        assert entries == [
            HistoryEntry("GPT", "m1"),
            HistoryEntry("Gemini", "m2"),
            HistoryEntry("GPT", "m3"),
        ]

    def test_long_log_keeps_most_recent_twenty_in_order(self):
        entries = window_history(make_messages(27))
        assert len(entries) == 20
        assert [e.text for e in entries] == [f"m{i}" for i in range(8, 28)]
        assert entries[0].speaker == "Gemini"  # m8
        assert entries[-1].speaker == "GPT"  # m27

    def test_custom_limit(self):
        assert [e.text for e in window_history(make_messages(5), limit=2)] == ["m4", "m5"]

    def test_zero_limit(self):
        assert window_history(make_messages(5), limit=0) == []

    def test_is_stable(self):
        log = make_messages(25)
        assert window_history(log) == window_history(log)


class TestBuildContext:
    def test_prompt_appended_after_window(self):
        entries = build_context(make_messages(22), "m22", "Gemini")
        assert len(entries) == 21
        assert entries[0].text == "m3"
        assert entries[-1] == HistoryEntry("Gemini", "m22")

    def test_empty_log(self):
        assert build_context([], "opening", "Gemini") == [HistoryEntry("Gemini", "opening")]


class TestToContents:
    def test_flattens_speaker_into_text(self):
        contents = to_contents([HistoryEntry("GPT", "hi"), HistoryEntry("Gemini", "hello")])
        assert contents == [
            {"role": "user", "parts": [{"text": "GPT: hi"}]},
            {"role": "user", "parts": [{"text": "Gemini: hello"}]},
        ]
