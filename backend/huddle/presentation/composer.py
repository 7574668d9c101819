"""
Message composer: text state, @mention autocomplete and debounced tone
analysis.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

import httpx

from huddle.config import settings
from huddle.presentation.base import View

logger = logging.getLogger(__name__)

TONE_FALLBACK = "Could not analyze tone."
MAX_MENTION_RESULTS = 5

# Badge colour by the first matching label family
_TONE_CLASSES = (
    (("aggressive", "negative"), "negative"),
    (("high-impact", "positive"), "positive"),
    (("weak", "low-impact", "confusing"), "caution"),
    (("neutral",), "neutral"),
)


def tone_class(analysis: str | None) -> str:
    if not analysis:
        return ""
    lowered = analysis.lower()
    for needles, css in _TONE_CLASSES:
        if any(n in lowered for n in needles):
            return css
    return "neutral"


class MentionAutocomplete:
    """Tracks the ``@partial`` being typed and offers matching members."""

    def __init__(self) -> None:
        self.visible = False
        self.search = ""
        self.position = 0

    def update(self, value: str) -> None:
        at = value.rfind("@")
        if at != -1:
            after = value[at + 1 :]
            if " " not in after:
                self.search = after
                self.position = at
                self.visible = True
                return
        self.visible = False

    def suggestions(self, usernames: Sequence[str]) -> list[str]:
        if not self.search:
            return list(usernames[:MAX_MENTION_RESULTS])
        needle = self.search.lower()
        return [u for u in usernames if needle in u.lower()][:MAX_MENTION_RESULTS]

    def insert(self, value: str, username: str) -> str:
        """Replace the partial mention in ``value`` with ``@username ``."""
        before = value[: self.position]
        after = value[self.position + len(self.search) + 1 :]
        self.visible = False
        return f"{before}@{username} {after}"

    def dismiss(self) -> None:
        self.visible = False


class ToneDebouncer:
    """Runs tone analysis once typing pauses for ``delay`` seconds.

    Each update cancels the pending timer.  A request that already started
    is never cancelled; its result is applied whenever it arrives, even if
    the text has changed since.  Must be driven from the event loop.
    """

    def __init__(
        self,
        analyze: Callable[[str], Awaitable[str]],
        on_change: Callable[[], None] | None = None,
        delay: float | None = None,
    ) -> None:
        self._analyze = analyze
        self._on_change = on_change or (lambda: None)
        self.delay = settings.TONE_DEBOUNCE_SECONDS if delay is None else delay
        self.analysis: str | None = None
        self.is_analyzing = False
        self.requests_started = 0
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def update(self, text: str) -> None:
        self.cancel()
        if not text.strip():
            self.analysis = None
            self.is_analyzing = False
            self._on_change()
            return
        self.is_analyzing = True
        self._timer = asyncio.get_running_loop().call_later(self.delay, self._fire, text)
        self._on_change()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def reset(self) -> None:
        self.cancel()
        self.analysis = None
        self.is_analyzing = False

    def _fire(self, text: str) -> None:
        self._timer = None
        self.requests_started += 1
        task = asyncio.get_running_loop().create_task(self._run(text))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self, text: str) -> None:
        try:
            result = await self._analyze(text)
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.error("Tone analysis error: %s", exc)
            result = TONE_FALLBACK
        self.analysis = result
        self.is_analyzing = False
        self._on_change()

    async def drain(self) -> None:
        """Wait for every in-flight analysis to finish."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight))


class Composer(View):
    def __init__(
        self,
        send: Callable[[str], object],
        usernames: Callable[[], Sequence[str]],
        analyze_tone: Callable[[str], Awaitable[str]] | None = None,
        placeholder: str = "Message",
    ) -> None:
        super().__init__()
        self._send = send
        self._usernames = usernames
        self.placeholder = placeholder
        self.text = ""
        self.mentions = MentionAutocomplete()
        self.tone = ToneDebouncer(analyze_tone, on_change=self._render) if analyze_tone else None

    @property
    def mention_suggestions(self) -> list[str]:
        return self.mentions.suggestions(list(self._usernames())) if self.mentions.visible else []

    @property
    def tone_class(self) -> str:
        return tone_class(self.tone.analysis) if self.tone else ""

    def set_text(self, value: str) -> None:
        self.text = value
        self.mentions.update(value)
        if self.tone:
            self.tone.update(value)
        self._render()

    def select_mention(self, username: str) -> None:
        self.text = self.mentions.insert(self.text, username)
        self._render()

    def escape(self) -> None:
        if self.mentions.visible:
            self.mentions.dismiss()
            self._render()

    def apply_suggestion(self, suggestion: str) -> None:
        self.set_text(suggestion)

    def submit(self) -> bool:
        if not self.text.strip():
            return False
        self._send(self.text)
        self.text = ""
        self.mentions.dismiss()
        if self.tone:
            self.tone.reset()
        self._render()
        return True
