from fastapi import APIRouter, Depends

from huddle.api.deps import get_current_user, get_gateway
from huddle.gateway.query import PersistenceGateway
from huddle.models.user import User
from huddle.schemas.message import MessageCreate, MessageResponse, PinToggle, PinToggleResult
from huddle.schemas.reaction import ReactionToggle, ReactionToggleResult
from huddle.services import messages as store

router = APIRouter(prefix="/messages", tags=["messages"])


@router.delete("/{message_id}")
async def delete_message(message_id: str, gateway: PersistenceGateway = Depends(get_gateway)) -> dict:
    """Delete a message and its replies."""
    store.delete(gateway, message_id)
    return {"success": True}


@router.get("/{message_id}/replies", response_model=list[MessageResponse])
async def list_replies(
    message_id: str,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> list[MessageResponse]:
    store.get_message(gateway, message_id)
    return [MessageResponse.model_validate(m) for m in store.list_replies(gateway, message_id)]


@router.post("/{message_id}/replies", response_model=MessageResponse | None)
async def send_reply(
    message_id: str,
    message_in: MessageCreate,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> MessageResponse | None:
    parent = store.get_message(gateway, message_id)
    reply = store.send(gateway, message_in.content, parent.channel_id, current_user.id, parent_id=parent.id)
    if reply is None:
        return None
    return MessageResponse.model_validate(store.get_message(gateway, reply.id))


@router.post("/{message_id}/pin", response_model=PinToggleResult)
async def toggle_pin(
    message_id: str,
    body: PinToggle,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> PinToggleResult:
    store.get_message(gateway, message_id)
    return PinToggleResult(is_pinned=store.toggle_pin(gateway, message_id, body.is_pinned))


@router.post("/{message_id}/reactions", response_model=ReactionToggleResult)
async def toggle_reaction(
    message_id: str,
    body: ReactionToggle,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> ReactionToggleResult:
    store.get_message(gateway, message_id)
    added = store.toggle_reaction(gateway, message_id, current_user.id, body.emoji)
    return ReactionToggleResult(added=added)
