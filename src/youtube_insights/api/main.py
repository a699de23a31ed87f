"""Main FastAPI application for the YouTube Insights API."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from .. import __version__
from ..config import settings
from ..services.video_store import VideoStore
from ..utils.error_handling import InsightsException
from ..utils.logging_config import configure_logging
from .routes import videos

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Opens the shared video store on startup and closes it on shutdown.
    """
    configure_logging(settings.log_level, settings.log_dir)
    logger.info("Starting YouTube Insights API")

    app.state.store = await VideoStore.create(settings.database_url)
    app.state.engine = None

    yield

    logger.info("Shutting down YouTube Insights API")
    await app.state.store.close()


app = FastAPI(
    title="YouTube Insights",
    description=(
        "Turns a YouTube video into topics and questions, matches them against "
        "the video's comments and renders simplified summaries."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(videos.router)


@app.exception_handler(InsightsException)
async def insights_exception_handler(request: Request, exc: InsightsException):
    """Map pipeline errors to their HTTP status."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error_code": exc.error_code,
            "details": exc.details
        }
    )


@app.get("/", include_in_schema=False)
async def root():
    """Redirect root to API documentation."""
    return RedirectResponse(url="/docs")


@app.get("/health")
async def health():
    """
    Root health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "youtube-insights",
        "version": __version__
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "youtube_insights.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower()
    )
