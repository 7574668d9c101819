"""Completion-service proxy routes."""

from fastapi import APIRouter, Depends

from huddle.api.deps import get_gateway
from huddle.gateway.query import PersistenceGateway
from huddle.schemas.ai import AnalysisResponse, OrgBrainRequest, ReplyRequest, SuggestionsResponse, ToneRequest
from huddle.services import ai_proxy
from huddle.services.completion import CompletionClient, get_completion_client

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/analyze-tone", response_model=AnalysisResponse)
async def analyze_tone(
    body: ToneRequest,
    client: CompletionClient = Depends(get_completion_client),
) -> AnalysisResponse:
    return AnalysisResponse(analysis=await ai_proxy.analyze_tone(client, body.messageContent))


@router.post("/reply", response_model=SuggestionsResponse)
async def suggest_replies(
    body: ReplyRequest,
    client: CompletionClient = Depends(get_completion_client),
) -> SuggestionsResponse:
    suggestions = await ai_proxy.suggest_replies(
        client,
        body.messageContent,
        body.threadContext,
        body.organizationContext,
    )
    return SuggestionsResponse(suggestions=suggestions)


@router.post("/org-brain", response_model=AnalysisResponse)
async def org_brain(
    body: OrgBrainRequest,
    client: CompletionClient = Depends(get_completion_client),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> AnalysisResponse:
    """Answer a question from recent and pinned messages across all channels."""
    return AnalysisResponse(analysis=await ai_proxy.answer_org_query(gateway, client, body.query))
