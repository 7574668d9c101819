from fastapi import APIRouter, Depends

from huddle.api.deps import get_current_user, get_gateway
from huddle.gateway.query import PersistenceGateway
from huddle.models.user import User
from huddle.schemas.user import UserResponse
from huddle.services import messages as store

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_members(
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> list[UserResponse]:
    """Every workspace member, alphabetical by username."""
    return [UserResponse.model_validate(u) for u in store.list_users(gateway)]
