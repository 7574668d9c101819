from typing import Any

from pydantic import BaseModel


# Text fields are typed loosely so the proxy can answer malformed input
# with its own 400 instead of a schema 422.
class ToneRequest(BaseModel):
    messageContent: Any = None


class ReplyRequest(BaseModel):
    messageContent: Any = None
    threadContext: Any = None
    organizationContext: str | None = None


class OrgBrainRequest(BaseModel):
    query: Any = None


class AnalysisResponse(BaseModel):
    analysis: str


class SuggestionsResponse(BaseModel):
    suggestions: list[str]
