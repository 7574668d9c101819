from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from huddle.database import get_db
from huddle.gateway.changefeed import bus

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected", "subscribers": bus.subscriber_count}
    except Exception as exc:
        return {"status": "unhealthy", "database": "disconnected", "error": str(exc)}
