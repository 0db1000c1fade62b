"""
Listing Detail Enrichment

Attaches photos, virtual tours and open houses to listings, reading them
from the local detail cache when present and fetching them from the
provider (then writing them back) when not.
"""
from __future__ import annotations

import contextvars
import json
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.mls_search.db.repository import DETAIL_FIELDS, ListingDetailRepository
from src.mls_search.db.session import SessionFactory, get_db_session
from src.mls_search.utils.logger import get_logger

logger = get_logger(__name__)

# Declared listing count gating each detail field (None = always enriched)
DECLARED_COUNT_FIELDS = {
    "photos": None,
    "virtual_tours": "virtualtourscount",
    "open_houses": "openhousescount",
}


class KeyedLocks:
    """
    One lock per key, created on demand and dropped once no thread holds
    or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def parse_payload(raw: Any) -> List[Any]:
    """
    Normalize a stored detail payload to a list.

    Stored values are usually already structured; older rows may hold the
    JSON text, which is parsed once.
    """
    value = raw
    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("detail_payload_unparseable", length=len(raw))
            return []

    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    return []


def declared_count(listing: Dict[str, Any], key: str) -> int:
    try:
        return int(listing.get(key) or 0)
    except (TypeError, ValueError):
        return 0


class DetailEnrichmentCache:
    """
    Cache-or-fetch enrichment of listings with provider media.

    Work on a single listing id is serialized, so concurrent enrichments of
    the same listing never race on its cache row. Provider failures and
    cache write failures only cost that one field its data.
    """

    def __init__(
        self,
        provider,
        session_factory: Optional[SessionFactory] = None,
        repository: Optional[ListingDetailRepository] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            provider: Object with ``fetch(listing_id, field) -> list`` (e.g. SparkApiClient)
            session_factory: Session factory for cache reads/writes (defaults to SessionLocal)
            repository: Detail repository
            max_workers: Listings enriched in parallel; 1 enriches sequentially
        """
        self.provider = provider
        self.session_factory = session_factory
        self.repository = repository or ListingDetailRepository()
        self.max_workers = max(1, max_workers or settings.enrichment_max_workers)
        self._locks = KeyedLocks()

    def enrich_all(self, listings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Enrich listings, preserving their order.

        Args:
            listings: Listing dicts (must contain "id")

        Returns:
            Enriched copies of the listings
        """
        if not listings:
            return []

        workers = min(self.max_workers, len(listings))
        if workers == 1:
            enriched = [self.enrich(listing) for listing in listings]
        else:
            # Caller log context per task; a Context is entered by one thread at a time
            contexts = [contextvars.copy_context() for _ in listings]
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="enrich") as executor:
                enriched = list(executor.map(
                    lambda context, listing: context.run(self.enrich, listing),
                    contexts,
                    listings,
                ))

        logger.info(
            "listings_enriched",
            total=len(enriched),
            workers=workers,
            with_photos=sum(1 for listing in enriched if listing.get("photos"))
        )
        return enriched

    def enrich(self, listing: Dict[str, Any]) -> Dict[str, Any]:
        """
        Attach photos, virtual tours and open houses to one listing.

        Virtual tours and open houses are only looked up when the listing
        declares at least one; otherwise an empty list is attached.

        Args:
            listing: Listing dict (must contain "id")

        Returns:
            Copy of the listing with "photos", "virtual_tours" and "open_houses"
        """
        enriched = dict(listing)
        listing_id = str(listing["id"])

        with self._locks.hold(listing_id):
            cached = self._read_cached(listing_id)
            row_exists = cached is not None

            for field in DETAIL_FIELDS:
                count_field = DECLARED_COUNT_FIELDS[field]
                if count_field and declared_count(listing, count_field) <= 0:
                    enriched[field] = []
                    continue

                stored = parse_payload(cached.get(field)) if cached else []
                if stored:
                    logger.debug("detail_cache_hit", listing_id=listing_id, field=field, items=len(stored))
                    enriched[field] = stored
                    continue

                fresh = self._fetch(listing_id, field)
                enriched[field] = fresh
                row_exists = self._write_back(listing_id, field, fresh, row_exists)

        return enriched

    def _read_cached(self, listing_id: str) -> Optional[Dict[str, Any]]:
        """Snapshot of the cached row's payloads, or None when there is no row."""
        try:
            with get_db_session(self.session_factory) as session:
                detail = self.repository.get_by_listing_id(session, listing_id)
                if detail is None:
                    return None
                return {field: getattr(detail, field) for field in DETAIL_FIELDS}
        except SQLAlchemyError as e:
            logger.error(
                "detail_cache_read_failed",
                listing_id=listing_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return None

    def _fetch(self, listing_id: str, field: str) -> List[Any]:
        logger.info("detail_cache_miss", listing_id=listing_id, field=field)
        try:
            records = self.provider.fetch(listing_id, field)
        except Exception as e:
            logger.error(
                "provider_fetch_failed",
                listing_id=listing_id,
                field=field,
                error=str(e),
                error_type=type(e).__name__
            )
            return []

        return records if isinstance(records, list) else []

    def _write_back(self, listing_id: str, field: str, payload: List[Any], row_exists: bool) -> bool:
        """
        Persist a freshly fetched payload.

        Returns:
            Whether the detail row exists afterwards
        """
        try:
            with get_db_session(self.session_factory) as session:
                if row_exists:
                    self.repository.update_field(session, listing_id, field, payload)
                else:
                    self.repository.insert_field(session, listing_id, field, payload)
            return True
        except SQLAlchemyError as e:
            logger.error(
                "detail_cache_write_failed",
                listing_id=listing_id,
                field=field,
                mode="update" if row_exists else "insert",
                error=str(e),
                error_type=type(e).__name__
            )
            return row_exists
