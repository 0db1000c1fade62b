"""
Geography Lookup Cache

Process-wide snapshot of every distinct (city, area, subdivision) combination.
Loaded lazily on first use, exactly once even under concurrent first access,
and read-only afterwards. ``invalidate()`` drops the snapshot so the next
reader loads it again.
"""
import threading
from typing import Callable, Optional, Sequence, Tuple

from src.mls_search.db.repository import ListingRepository
from src.mls_search.db.session import SessionFactory, get_db_session
from src.mls_search.models.location import GeographyRecord
from src.mls_search.utils.logger import get_logger

logger = get_logger(__name__)

GeographyLoader = Callable[[], Sequence[GeographyRecord]]


class GeographyLookupCache:
    """
    Lazily-loaded, single-flight snapshot of geography records.

    Load failures propagate to the caller and leave the cache empty, so the
    next caller attempts the load again.
    """

    def __init__(self, loader: GeographyLoader):
        """
        Args:
            loader: Callable returning all geography records from the backing store
        """
        self._loader = loader
        self._records: Optional[Tuple[GeographyRecord, ...]] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._records is not None

    def get_records(self) -> Tuple[GeographyRecord, ...]:
        """
        Return the snapshot, loading it first if needed.

        Returns:
            Tuple of GeographyRecord

        Raises:
            Exception: Whatever the loader raises (e.g. database unavailable)
        """
        records = self._records
        if records is not None:
            return records

        with self._lock:
            # Another thread may have finished loading while we waited
            if self._records is None:
                self._records = self._load()
            return self._records

    def reload(self) -> Tuple[GeographyRecord, ...]:
        """
        Replace the snapshot with a fresh load.

        The old snapshot keeps serving readers until the new one is ready.
        """
        with self._lock:
            self._records = self._load()
            return self._records

    def invalidate(self) -> None:
        """Drop the snapshot; the next reader triggers a load."""
        with self._lock:
            self._records = None
        logger.info("geography_cache_invalidated")

    def _load(self) -> Tuple[GeographyRecord, ...]:
        logger.info("geography_cache_loading")
        try:
            records = tuple(self._loader())
        except Exception as e:
            logger.error(
                "geography_cache_load_failed",
                error=str(e),
                error_type=type(e).__name__
            )
            raise

        logger.info("geography_cache_loaded", combinations=len(records))
        return records


def database_loader(session_factory: Optional[SessionFactory] = None) -> GeographyLoader:
    """
    Loader reading distinct geography combinations from the listing table.

    Args:
        session_factory: Session factory (defaults to SessionLocal)

    Returns:
        Callable suitable for GeographyLookupCache
    """
    repository = ListingRepository()

    def load() -> Sequence[GeographyRecord]:
        with get_db_session(session_factory) as session:
            return repository.get_distinct_geography(session)

    return load
