"""
AI proxy: tone analysis, reply suggestions and Org Brain answers.

Each operation validates its primary text, fills a fixed prompt template and
makes exactly one completion call.  Completion failures surface as
AIProcessingFailed; nothing is retried.
"""

import logging
import re
from dataclasses import dataclass

from huddle.config import settings
from huddle.core.errors import AIProcessingFailed, ConfigurationError, InvalidInput
from huddle.gateway.query import PersistenceGateway
from huddle.services.completion import CompletionClient
from huddle.services.org_context import EMPTY_CONTEXT, build_org_context

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3
# "1.", "2)", "-", "*" or "•" in front of a suggestion, spaced or not;
# a decimal such as "1.5x" is not a marker
_ENUMERATION_RE = re.compile(r"^(?:\d+[.)](?!\d)|[-*\u2022])\s*")


@dataclass(frozen=True)
class CompletionParams:
    temperature: float
    max_tokens: int


TONE_PARAMS = CompletionParams(temperature=0.5, max_tokens=100)
REPLY_PARAMS = CompletionParams(temperature=0.7, max_tokens=150)
ORG_BRAIN_PARAMS = CompletionParams(temperature=0.7, max_tokens=1000)

TONE_SYSTEM = "You are an AI assistant that analyzes the tone and impact of text."
TONE_PROMPT = """Analyze the tone and impact of the following message. Provide a concise assessment using labels like: Aggressive, Weak, Confusing, High-Impact, Low-Impact, Neutral, Positive, Negative. If applicable, provide a brief (one sentence) explanation.

Message: "{message}"

Analysis:"""
TONE_FALLBACK = "Could not analyze tone."

REPLY_SYSTEM = (
    "You are a helpful AI assistant that suggests appropriate responses in a chat application. "
    "Return only the responses, one per line, without any numbering or additional formatting."
)
REPLY_PROMPT = """You are a helpful AI assistant in a team chat application.
Based on the following message and thread context, suggest 3 appropriate responses.
Keep responses concise, professional, and contextually relevant.
Return ONLY the 3 responses, one per line, without any numbering or additional formatting.

{organization}Thread Context:
{thread}

Current Message:
{message}

Suggest 3 different responses:"""

ORG_BRAIN_SYSTEM = (
    "You are a helpful AI assistant providing summaries based on organizational "
    "knowledge from chat logs across channels."
)
ORG_BRAIN_PROMPT = """You are an AI assistant that answers questions based on the provided context from a team chat application.
Analyze the following context from various chat channels and pinned documents to answer the user's query.
Each message is prefixed with the channel name in brackets, like [channel-name]. Pay attention to which channel the information comes from.
Focus on synthesizing information from the provided text.
If you cannot find relevant information in the context to fully answer the query, state that you don't have enough information in the provided context.
Keep the answer concise.

Context:
{context}

User Query: "{query}"

Answer:"""
ORG_BRAIN_FALLBACK = "Could not generate a summary."


def require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"Invalid input: {field} must be a non-empty string")
    return value


def parse_suggestions(text: str) -> list[str]:
    """One suggestion per non-blank line, at most three, markers stripped."""
    lines = (_ENUMERATION_RE.sub("", line.strip()).strip() for line in (text or "").split("\n"))
    return [line for line in lines if line][:MAX_SUGGESTIONS]


async def _complete(client: CompletionClient, model: str, system: str, prompt: str, params: CompletionParams) -> str:
    try:
        return await client.complete(
            model=model,
            system=system,
            prompt=prompt,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
        )
    except Exception as exc:
        logger.error("Completion call to %s failed: %s", model, exc)
        raise AIProcessingFailed(str(exc) or exc.__class__.__name__) from exc


async def analyze_tone(client: CompletionClient, message_content) -> str:
    message_content = require_text(message_content, "messageContent")
    analysis = await _complete(
        client,
        settings.TONE_MODEL,
        TONE_SYSTEM,
        TONE_PROMPT.format(message=message_content),
        TONE_PARAMS,
    )
    return analysis or TONE_FALLBACK


async def suggest_replies(
    client: CompletionClient,
    message_content,
    thread_context=None,
    organization_context: str | None = None,
) -> list[str]:
    message_content = require_text(message_content, "messageContent")
    if thread_context is None:
        thread_context = []
    elif not isinstance(thread_context, list):
        raise InvalidInput("Invalid input: threadContext must be an array")
    organization =f"Organization Context: {organization_context}\n" if organization_context else ""
    prompt = REPLY_PROMPT.format(
        organization=organization,
        thread="\n".join(str(line) for line in thread_context),
        message=message_content,
    )
    text = await _complete(client, settings.REPLY_MODEL, REPLY_SYSTEM, prompt, REPLY_PARAMS)
    return parse_suggestions(text)


async def answer_org_query(gateway: PersistenceGateway, client: CompletionClient, query) -> str:
    """Answer ``query`` from recent and pinned messages across all channels.

    Returns EMPTY_CONTEXT without calling the completion service when there
    is nothing to aggregate.
    """
    query = require_text(query, "query")
    if not client.configured:
        logger.error("Org Brain: completion API key is not configured")
        raise ConfigurationError("Server configuration error: OpenAI API key is missing.")

    context = build_org_context(gateway)
    if not context.strip():
        logger.warning("Org Brain: no content found across channels")
        return EMPTY_CONTEXT

    logger.info("Org Brain: sending query (%d context chars)", len(context))
    answer = await _complete(
        client,
        settings.ORG_BRAIN_MODEL,
        ORG_BRAIN_SYSTEM,
        ORG_BRAIN_PROMPT.format(context=context, query=query),
        ORG_BRAIN_PARAMS,
    )
    return answer or ORG_BRAIN_FALLBACK
