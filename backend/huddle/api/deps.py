from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from huddle.database import get_db
from huddle.gateway.changefeed import bus
from huddle.gateway.query import PersistenceGateway
from huddle.models.user import User
from huddle.services import auth_service

security = HTTPBearer()


def get_gateway(db: Session = Depends(get_db)) -> PersistenceGateway:
    return PersistenceGateway(db, bus)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> User:
    user = auth_service.get_user_from_token(credentials.credentials, gateway)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    return user
