from fastapi import APIRouter, Depends, status

from huddle.api.deps import get_current_user, get_gateway
from huddle.gateway.query import PersistenceGateway
from huddle.models.user import User
from huddle.schemas.channel import ChannelCreate, ChannelResponse
from huddle.schemas.message import MessageCreate, MessageResponse
from huddle.services import messages as store

router = APIRouter(prefix="/channels", tags=["channels"])


@router.get("", response_model=list[ChannelResponse])
async def list_channels(
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> list[ChannelResponse]:
    return [ChannelResponse.model_validate(c) for c in store.list_channels(gateway)]


@router.post("", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_channel(
    channel_in: ChannelCreate,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> ChannelResponse:
    channel = store.create_channel(gateway, channel_in.name, current_user.id, channel_in.description)
    return ChannelResponse.model_validate(channel)


@router.get("/{channel_id}", response_model=ChannelResponse)
async def get_channel(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> ChannelResponse:
    return ChannelResponse.model_validate(store.get_channel(gateway, channel_id))


@router.get("/{channel_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> list[MessageResponse]:
    """Top-level messages of the channel, oldest first."""
    store.get_channel(gateway, channel_id)
    return [MessageResponse.model_validate(m) for m in store.list_top_level(gateway, channel_id)]


@router.post("/{channel_id}/messages", response_model=MessageResponse | None)
async def send_message(
    channel_id: str,
    message_in: MessageCreate,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> MessageResponse | None:
    store.get_channel(gateway, channel_id)
    message = store.send(gateway, message_in.content, channel_id, current_user.id)
    if message is None:
        return None
    return MessageResponse.model_validate(store.get_message(gateway, message.id))


@router.get("/{channel_id}/pinned", response_model=list[MessageResponse])
async def list_pinned(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> list[MessageResponse]:
    return [MessageResponse.model_validate(m) for m in store.list_pinned(gateway, channel_id)]
