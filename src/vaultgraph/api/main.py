"""FastAPI application main entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from .. import __version__
from .error_handlers import register_error_handlers
from .routes import get_graph_service, router

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the session's cached graph on shutdown."""
    yield
    if get_graph_service.cache_info().currsize:
        get_graph_service().close()
        get_graph_service.cache_clear()
        logger.info("Graph service closed")


app = FastAPI(
    title="vaultgraph API",
    description="Path finding and hub detection for Markdown vaults",
    version=__version__,
    lifespan=lifespan,
)

register_error_handlers(app)
app.include_router(router)
