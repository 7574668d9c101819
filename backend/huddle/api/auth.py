from fastapi import APIRouter, Depends

from huddle.api.deps import get_current_user, get_gateway
from huddle.gateway.query import PersistenceGateway
from huddle.models.user import User
from huddle.schemas.user import AuthResponse, ProfileUpdate, SignInRequest, SignUpRequest, UserResponse
from huddle.services import identity
from huddle.services.identity import AuthResult

router = APIRouter(prefix="/auth", tags=["auth"])


def _token(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        access_token=result.token,
        user=UserResponse.model_validate(result.profile),
    )


@router.post("/signup", response_model=AuthResponse)
async def signup(body: SignUpRequest, gateway: PersistenceGateway = Depends(get_gateway)) -> AuthResponse:
    return _token(identity.sign_up(gateway, body.email, body.password, body.username))


@router.post("/signin", response_model=AuthResponse)
async def signin(body: SignInRequest, gateway: PersistenceGateway = Depends(get_gateway)) -> AuthResponse:
    return _token(identity.sign_in(gateway, body.email, body.password))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> UserResponse:
    profile = identity.update_profile(gateway, current_user.id, body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(profile)
