"""
FastAPI Main Application

MLS Listing Search REST API.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from config.settings import settings
from src import __version__
from src.mls_search.api.dependencies import get_db, get_geography_cache
from src.mls_search.api.schemas import HealthCheck
from src.mls_search.api.routers import search
from src.mls_search.db.session import close_connections, health_check as database_health_check
from src.mls_search.utils.logger import setup_logging

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Dispose of pooled database connections on shutdown."""
    yield
    close_connections()


# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="MLS Listing Search API",
    description="Listing search with fuzzy location resolution and cached media enrichment",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(search.router)


@app.get("/health", response_model=HealthCheck, tags=["health"])
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
        Health status with database connectivity check
    """
    database_status = "connected" if database_health_check(db) else "error"

    return HealthCheck(
        status="healthy" if database_status == "connected" else "degraded",
        version=__version__,
        database=database_status,
        geography_cache_loaded=get_geography_cache().is_loaded,
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/", tags=["root"])
def root():
    """
    Root endpoint.

    Returns:
        API information
    """
    return {
        "name": "MLS Listing Search API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.mls_search.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
