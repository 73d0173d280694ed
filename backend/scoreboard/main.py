"""FastAPI main application."""
from contextlib import asynccontextmanager
from typing import Optional
import logging
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from scoreboard.database import KeyValueTree, build_tree, check_store_settings
from scoreboard.errors import ConfigurationError
from scoreboard.logging_config import configure_logging
from scoreboard.models import HealthResponse
from scoreboard.routes import scores
from scoreboard.services.auth import ApiKeyVerifier
from scoreboard.services.score_store import ScoreStore, epoch_millis
from scoreboard.settings import Settings, settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the score store on startup and release the backing store on shutdown."""
    config: Settings = app.state.settings
    if app.state.verifier is None:
        verifier = ApiKeyVerifier.from_settings(config)
        verifier.check()
        app.state.verifier = verifier

    tree: KeyValueTree = app.state.tree or build_tree(config)
    app.state.store = ScoreStore(tree, root=config.SCORES_PATH)
    logger.info("[APP] Scoreboard ready (scores at %s)", app.state.store.root)
    try:
        yield
    finally:
        await tree.close()
        logger.info("[APP] Scoreboard stopped")


def create_app(
    config: Optional[Settings] = None,
    tree: Optional[KeyValueTree] = None,
    verifier: Optional[ApiKeyVerifier] = None,
) -> FastAPI:
    """
    Create the scoreboard app.

    The backing store and API key verifier are built from settings at startup
    unless they are passed in.
    """
    config = config or settings
    app = FastAPI(
        title="Racing Scoreboard API",
        description="Best-time leaderboard for racing courses c1..c5",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.tree = tree
    app.state.verifier = verifier

    # Requests without an Origin header (server-to-server) are never blocked
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(scores.router)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check."""
        return HealthResponse(time=epoch_millis())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods look the same to clients
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Not found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    return app


app = create_app()


def run() -> None:
    """Console entry point: validate configuration, then serve with uvicorn."""
    configure_logging(settings.LOG_LEVEL)
    try:
        ApiKeyVerifier.from_settings(settings).check()
        check_store_settings(settings)
    except ConfigurationError as e:
        logger.error("[APP] %s", e)
        sys.exit(1)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
