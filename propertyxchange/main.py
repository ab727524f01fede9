"""FastAPI application and Socket.io ASGI entrypoint."""

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from propertyxchange.api import (
    agents,
    conversations,
    listings,
    notifications,
    requests,
    users,
)
from propertyxchange.config import get_settings
from propertyxchange.db.session import dispose_engine
from propertyxchange.errors import PropertyXchangeError
from propertyxchange.realtime.server import sio
from propertyxchange.taskiq_app.broker import broker

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Start the Taskiq broker for the API process and release DB connections on exit."""

    if not broker.is_worker_process:
        await broker.startup()
    yield
    if not broker.is_worker_process:
        await broker.shutdown()
    await dispose_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PropertyXchangeError)
async def handle_domain_error(_: Request, exc: PropertyXchangeError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content: dict[str, object] = {"message": "Internal server error"}
    if settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


for module in (agents, listings, users, requests, notifications, conversations):
    app.include_router(module.router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Basic health endpoint."""

    return {"status": "ok"}


socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
