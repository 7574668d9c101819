"""
huddle: FastAPI backend entry point.

Serves the workspace REST API, the change-feed WebSocket and the
completion-service proxy routes.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from huddle.api import ai, auth, channels, health, invites, messages, users
from huddle.api.deps import get_gateway
from huddle.config import settings
from huddle.core.errors import HuddleError
from huddle.gateway.changefeed import bus
from huddle.gateway.query import PersistenceGateway
from huddle.redis import relay
from huddle.redis.client import connect, disconnect
from huddle.websocket.handlers import changes_ws_handler
from huddle.websocket.manager import ConnectionManager

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

manager = ConnectionManager(bus)


@asynccontextmanager
async def lifespan(app: FastAPI):
    connect()
    relay_sub = relay.attach(bus)
    yield
    relay_sub.unsubscribe()
    await disconnect()


app = FastAPI(
    title="huddle",
    description="Team chat workspace with AI-assisted replies and Org Brain",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
# allow_origins=["*"] is incompatible with allow_credentials=True; a wildcard
# entry switches to allow_origin_regex=".*" instead.
_cors_origins = [o for o in settings.CORS_ORIGINS if o != "*"]
_cors_regex = ".*" if len(_cors_origins) < len(settings.CORS_ORIGINS) else None

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_origin_regex=_cors_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router)
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(channels.router, prefix="/api")
app.include_router(messages.router, prefix="/api")
app.include_router(invites.router, prefix="/api")
app.include_router(ai.router, prefix="/api")

# ---------------------------------------------------------------------------
# WebSocket endpoint
# ---------------------------------------------------------------------------


@app.websocket("/ws/changes")
async def changes_websocket_endpoint(
    websocket: WebSocket,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> None:
    await changes_ws_handler(websocket, gateway, manager)


# ---------------------------------------------------------------------------
# Custom exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(HuddleError)
async def huddle_error_handler(request: Request, exc: HuddleError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})
