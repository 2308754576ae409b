"""
Authoritative chess game-state service: validates moves, keeps games consistent under concurrent submissions.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chess_sync.api.errors import register_exception_handlers
from chess_sync.api.routes import router
from chess_sync.core.config import get_settings
from chess_sync.db.database import init_db, shutdown_db

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application lifecycle events."""
    logger.info("Starting chess sync service ...")
    init_db()

    yield

    logger.info("Shutting down chess sync service ...")
    shutdown_db()


app = FastAPI(
    title="Chess Sync",
    description="Authoritative game state and move validation for online chess.",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "chess_sync.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
