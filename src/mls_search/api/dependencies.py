"""
FastAPI Dependencies

Provides dependency injection for database sessions and the long-lived
search components.
"""
from functools import lru_cache
from typing import Generator
from sqlalchemy.orm import Session

from config.settings import settings
from src.mls_search.db.session import SessionLocal
from src.mls_search.enrichment.detail_cache import DetailEnrichmentCache
from src.mls_search.scrapers.spark_client import SparkApiClient
from src.mls_search.services.geography_cache import GeographyLookupCache, database_loader
from src.mls_search.services.location_resolver import LocationResolver


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields:
        SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache(maxsize=1)
def get_geography_cache() -> GeographyLookupCache:
    """Process-wide geography cache (loaded on first resolve)."""
    return GeographyLookupCache(database_loader())


def get_location_resolver() -> LocationResolver:
    """
    Location resolver dependency.

    Returns:
        Resolver bound to the process-wide geography cache
    """
    return LocationResolver(get_geography_cache())


@lru_cache(maxsize=1)
def get_detail_enricher() -> DetailEnrichmentCache:
    """
    Detail enrichment dependency.

    Returns:
        Enrichment cache backed by the Spark API client
    """
    return DetailEnrichmentCache(
        provider=SparkApiClient(),
        max_workers=settings.enrichment_max_workers,
    )


def get_settings():
    """
    Settings dependency.

    Returns:
        Application settings
    """
    return settings
