"""Tests for mention formatting, the composer and the tone debouncer."""

import asyncio

import httpx
import pytest

from huddle.presentation.composer import Composer, MentionAutocomplete, ToneDebouncer, tone_class
from huddle.presentation.mentions import Segment, format_message_content, mentioned_usernames, render_html


class TestMentions:
    def test_known_user_is_highlighted(self):
        segments = format_message_content("hello @bob", ["alice", "bob"])
        assert segments == [Segment("hello", False), Segment(" @bob", True)]

    def test_unknown_user_is_plain(self):
        segments = format_message_content("hello @bob", ["alice"])
        assert not any(s.is_mention for s in segments)
        assert "".join(s.text for s in segments) == "hello @bob"

    def test_case_insensitive(self):
        assert mentioned_usernames("ping @Bob and @carol", ["bob"]) == ["bob"]

    def test_mention_needs_leading_whitespace(self):
        assert not any(s.is_mention for s in format_message_content("mail me@bob", ["bob"]))

    def test_render_html_escapes(self):
        html = render_html(format_message_content("<b>hi</b> @bob", ["bob"]))
        assert html == '&lt;b&gt;hi&lt;/b&gt;<span class="mention"> @bob</span>'

    def test_empty(self):
        assert format_message_content("", ["bob"]) == []


class TestMentionAutocomplete:
    USERS = ["alice", "alan", "bob", "carol", "dave", "erin", "frank"]

    def test_tracks_partial(self):
        ac = MentionAutocomplete()
        ac.update("hi @al")
        assert ac.visible
        assert (ac.search, ac.position) == ("al", 3)
        assert ac.suggestions(self.USERS) == ["alice", "alan"]

    def test_space_closes(self):
        ac = MentionAutocomplete()
        ac.update("hi @al ")
        assert not ac.visible

    def test_empty_search_offers_first_five(self):
        ac = MentionAutocomplete()
        ac.update("@")
        assert ac.suggestions(self.USERS) == self.USERS[:5]

    def test_insert(self):
        ac = MentionAutocomplete()
        ac.update("hi @Al")
        assert ac.insert("hi @Al", "alice") == "hi @alice "
        assert not ac.visible


@pytest.mark.parametrize(
    "analysis, expected",
    [
        ("Aggressive: demands without context.", "negative"),
        ("Negative", "negative"),
        ("High-Impact and clear.", "positive"),
        ("Positive", "positive"),
        ("Weak, hedged wording", "caution"),
        ("Confusing", "caution"),
        ("Neutral", "neutral"),
        ("Something else", "neutral"),
        (None, ""),
    ],
)
def test_tone_class(analysis, expected):
    assert tone_class(analysis) == expected


class TestComposer:
    def test_submit_sends_and_clears(self):
        sent = []
        composer = Composer(sent.append, lambda: ["bob"])
        composer.set_text("hi @b")
        assert composer.mention_suggestions == ["bob"]

        composer.select_mention("bob")
        assert composer.text == "hi @bob "
        assert composer.submit() is True
        assert sent == ["hi @bob "]
        assert composer.text == ""

    def test_blank_submit_is_ignored(self):
        sent = []
        composer = Composer(sent.append, lambda: [])
        composer.set_text("   ")
        assert composer.submit() is False
        assert sent == []

    def test_escape_hides_suggestions(self):
        composer = Composer(lambda _t: None, lambda: ["bob"])
        composer.set_text("@")
        composer.escape()
        assert composer.mention_suggestions == []

    def test_render_callbacks(self):
        renders = []
        composer = Composer(lambda _t: None, lambda: [])
        composer.on_render(renders.append)
        composer.set_text("x")
        assert renders == [composer]


class TestToneDebouncer:
    @pytest.mark.asyncio
    async def test_only_last_keystroke_is_analyzed(self):
        calls = []

        async def analyze(text):
            calls.append(text)
            return "Neutral"

        tone = ToneDebouncer(analyze, delay=0.01)
        for text in ("h", "he", "hey"):
            tone.update(text)
        assert tone.is_analyzing and tone.pending

        await asyncio.sleep(0.05)
        await tone.drain()

        assert calls == ["hey"]
        assert tone.analysis == "Neutral"
        assert not tone.is_analyzing

    @pytest.mark.asyncio
    async def test_blank_text_clears(self):
        async def analyze(text):
            return "Positive"

        tone = ToneDebouncer(analyze, delay=0.01)
        tone.update("great")
        tone.update("  ")
        await asyncio.sleep(0.05)

        assert tone.requests_started == 0
        assert tone.analysis is None

    @pytest.mark.asyncio
    async def test_in_flight_result_is_applied_even_if_stale(self):
        release = asyncio.Event()

        async def analyze(text):
            await release.wait()
            return f"analysis of {text}"

        tone = ToneDebouncer(analyze, delay=0.01)
        tone.update("first")
        await asyncio.sleep(0.05)
        assert tone.requests_started == 1

        tone.update("")  # cancels nothing in flight
        release.set()
        await tone.drain()

        assert tone.analysis == "analysis of first"

    @pytest.mark.asyncio
    async def test_failure_falls_back(self):
        async def analyze(text):
            raise httpx.ConnectError("offline")

        tone = ToneDebouncer(analyze, delay=0.01)
        tone.update("hello")
        await asyncio.sleep(0.05)
        await tone.drain()

        assert tone.analysis == "Could not analyze tone."

    @pytest.mark.asyncio
    async def test_composer_submit_resets_tone(self):
        async def analyze(text):
            return "Positive"

        composer = Composer(lambda _t: None, lambda: [], analyze_tone=analyze)
        composer.tone.delay = 0.01
        composer.set_text("nice work")
        await asyncio.sleep(0.05)
        await composer.tone.drain()
        assert composer.tone_class == "positive"

        composer.submit()
        assert composer.tone.analysis is None
        assert composer.tone_class == ""
