"""Main FastAPI application for the tradebook API."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .database import init_db, close_db
from .errors import catch_unhandled_exceptions, register_exception_handlers
from .routers import portfolio, stocks, health
from .services.llm import close_analysis_service
from .services.quotes import close_quote_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        *([logging.FileHandler(settings.log_file)] if settings.log_file else [])
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting Tradebook API")
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down Tradebook API")
    await close_quote_service()
    await close_analysis_service()
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Tradebook API",
    description="Order entry, positions and holdings with live quotes and AI commentary",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Must be added before CORSMiddleware so it runs inside it
app.middleware("http")(catch_unhandled_exceptions)

# Allow the Authorization header and preflight from any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

register_exception_handlers(app)

# Include routers
app.include_router(health.router)
app.include_router(portfolio.router)
app.include_router(stocks.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Tradebook API",
        "version": __version__,
        "status": "operational",
        "quote_provider": settings.quote_provider.value
    }


def run() -> None:
    import uvicorn
    uvicorn.run(
        "tradebook.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
