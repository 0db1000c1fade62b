"""
Database Package

Database models, connection management, and data persistence layer.
"""
from src.mls_search.db.base import Base
from src.mls_search.db.session import (
    build_engine,
    build_session_factory,
    engine,
    SessionLocal,
    get_db_session,
    health_check,
    close_connections,
)
from src.mls_search.db.models import (
    Listing,
    ListingDetail,
    LISTING_FIELDS,
)
from src.mls_search.db.repository import (
    BaseRepository,
    ListingRepository,
    ListingDetailRepository,
    DETAIL_FIELDS,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "build_engine",
    "build_session_factory",
    "engine",
    "SessionLocal",
    "get_db_session",
    "health_check",
    "close_connections",
    # Models
    "Listing",
    "ListingDetail",
    "LISTING_FIELDS",
    # Repositories
    "BaseRepository",
    "ListingRepository",
    "ListingDetailRepository",
    "DETAIL_FIELDS",
]
