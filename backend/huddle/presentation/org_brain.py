"""
AI-backed views: the Org Brain question box and reply suggestions.
"""

import logging
from collections.abc import Callable

import httpx

from huddle.presentation.api_client import ApiClient
from huddle.presentation.base import View

logger = logging.getLogger(__name__)


class OrgBrainModal(View):
    def __init__(self, api: ApiClient) -> None:
        super().__init__()
        self.api = api
        self.query = ""
        self.response: str | None = None
        self.loading = False

    def set_query(self, value: str) -> None:
        self.query = value
        self._render()

    async def ask(self) -> str | None:
        if not self.query.strip():
            return None
        self.loading = True
        self.response = None
        self.error = None
        self._render()
        try:
            self.response = await self.api.ask_org_brain(self.query)
        except (httpx.HTTPError, KeyError) as exc:
            self.response = "Could not retrieve information."
            self._fail("Org Brain query", exc, "Failed to get a response from the Org Brain.")
            return None
        finally:
            self.loading = False
        self._render()
        return self.response


class ReplySuggestions(View):
    """Up to three AI reply drafts for one message."""

    def __init__(
        self,
        api: ApiClient,
        message_content: str,
        thread_context: Callable[[], list[str]],
        organization_context: str | None = None,
        on_select: Callable[[str], None] | None = None,
    ) -> None:
        super().__init__()
        self.api = api
        self.message_content = message_content
        self._thread_context = thread_context
        self.organization_context = organization_context
        self._on_select = on_select
        self.suggestions: list[str] = []
        self.loading = False

    async def generate(self) -> list[str]:
        self.loading = True
        self.error = None
        self._render()
        try:
            self.suggestions = await self.api.suggest_replies(
                self.message_content, self._thread_context(), self.organization_context
            )
        except httpx.HTTPError as exc:
            self._fail("Generating suggestions", exc, "Failed to generate suggestions. Please try again.")
            return []
        finally:
            self.loading = False
        self._render()
        return self.suggestions

    def select(self, suggestion: str) -> None:
        if self._on_select:
            self._on_select(suggestion)
        self.suggestions = []
        self._render()
