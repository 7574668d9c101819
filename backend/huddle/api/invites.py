from fastapi import APIRouter, Depends

from huddle.api.deps import get_gateway
from huddle.gateway.query import PersistenceGateway
from huddle.schemas.invite import (
    InviteCodeBrief,
    InviteGenerateRequest,
    InviteGenerateResponse,
    InviteRedeemRequest,
    InviteRedeemResponse,
    InviteResponse,
)
from huddle.schemas.user import UserResponse
from huddle.services import invites

router = APIRouter(tags=["invites"])


@router.post("/invite/generate", response_model=InviteGenerateResponse)
async def generate_invite(
    body: InviteGenerateRequest,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> InviteGenerateResponse:
    """Create a 7-day, 5-use invite code on behalf of ``userId``."""
    invite = invites.generate(gateway, body.userId)
    return InviteGenerateResponse(inviteCode=InviteCodeBrief.model_validate(invite))


@router.get("/invites/{code}", response_model=InviteResponse)
async def preview_invite(code: str, gateway: PersistenceGateway = Depends(get_gateway)) -> InviteResponse:
    """Validate an invite without redeeming it. No authentication required."""
    return InviteResponse.model_validate(invites.validate(gateway, code))


@router.post("/invites/{code}/redeem", response_model=InviteRedeemResponse)
async def redeem_invite(
    code: str,
    body: InviteRedeemRequest,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> InviteRedeemResponse:
    """Sign up through an invite. Consumes one use of the code."""
    result = invites.redeem(gateway, code, body.email, body.password, body.username)
    return InviteRedeemResponse(
        access_token=result.token,
        token_type="bearer",
        user=UserResponse.model_validate(result.profile),
    )
