"""
HTTP client for the server-side proxy routes (AI + invite generation).

Callers decide how to surface failures: every method raises
``httpx.HTTPError`` (including ``HTTPStatusError`` for non-2xx replies).
"""

import logging

import httpx

from huddle.config import settings

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(self, http: httpx.AsyncClient | None = None, base_url: str | None = None, timeout: float = 60.0):
        self._http = http or httpx.AsyncClient(base_url=base_url or settings.PUBLIC_BASE_URL, timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, path: str, payload: dict) -> dict:
        resp = await self._http.post(path, json=payload)
        resp.raise_for_status()
        return resp.json()

    async def analyze_tone(self, message_content: str) -> str:
        data = await self._post("/api/ai/analyze-tone", {"messageContent": message_content})
        return data["analysis"]

    async def suggest_replies(
        self,
        message_content: str,
        thread_context: list[str],
        organization_context: str | None = None,
    ) -> list[str]:
        data = await self._post(
            "/api/ai/reply",
            {
                "messageContent": message_content,
                "threadContext": thread_context,
                "organizationContext": organization_context,
            },
        )
        return list(data.get("suggestions") or [])

    async def ask_org_brain(self, query: str) -> str:
        data = await self._post("/api/ai/org-brain", {"query": query})
        return data["analysis"]

    async def generate_invite(self, user_id: str) -> dict:
        """Returns ``{"code": ..., "expires_at": ...}``."""
        data = await self._post("/api/invite/generate", {"userId": user_id})
        return data["inviteCode"]
