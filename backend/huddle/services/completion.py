"""
Completion service client: a single chat-completion call per request.

Wraps the OpenAI SDK so the AI proxy (and tests) depend on one small
``complete()`` coroutine.  No retries: any SDK failure propagates.
"""

import logging
from functools import lru_cache

from openai import AsyncOpenAI

from huddle.config import settings
from huddle.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class CompletionClient:
    def __init__(self, api_key: str, base_url: str | None = None, timeout: float = 30.0) -> None:
        self._api_key = api_key
        self._base_url = base_url or None
        self._timeout = timeout
        self._client: AsyncOpenAI | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> AsyncOpenAI:
        if not self.configured:
            raise ConfigurationError("Server configuration error: OpenAI API key is missing.")
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def complete(
        self,
        *,
        model: str,
        system: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Return the first choice's text, stripped ("" when empty)."""
        client = self._get_client()
        logger.debug("Completion request model=%s max_tokens=%s", model, max_tokens)
        completion = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            n=1,
        )
        content = completion.choices[0].message.content if completion.choices else None
        return (content or "").strip()


@lru_cache
def get_completion_client() -> CompletionClient:
    return CompletionClient(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
