"""FastAPI application with lifespan, WebSocket, and REST routes."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket

from jwt_workbench.api.routes import router
from jwt_workbench.api.websocket import websocket_session
from jwt_workbench.config import settings
from jwt_workbench.database import close_db, get_db

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("JWT Workbench starting, opening history database")
    await get_db()
    yield
    logger.info("JWT Workbench shutting down, closing history database")
    await close_db()


app = FastAPI(
    title="JWT Workbench",
    description="Build, inspect and re-sign HMAC JSON Web Tokens",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.websocket("/ws/session")
async def ws_session(websocket: WebSocket):
    await websocket_session(websocket)
