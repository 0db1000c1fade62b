"""
Tests for listing detail enrichment

Covers cache hits and misses, count gating, per-field failure isolation,
write failures, and concurrent enrichment of the same listing.
"""
import threading
import time
from unittest.mock import Mock

import pytest
import structlog
from sqlalchemy.exc import SQLAlchemyError

from src.mls_search.db.base import Base
from src.mls_search.db.repository import ListingDetailRepository
from src.mls_search.db.session import build_engine, build_session_factory
from src.mls_search.enrichment.detail_cache import (
    DetailEnrichmentCache,
    KeyedLocks,
    declared_count,
    parse_payload,
)

PHOTOS = [{"Id": "p1", "Uri640": "https://cdn.example.com/p1.jpg"}]
TOURS = [{"Id": "t1", "Uri": "https://tours.example.com/t1"}]
OPEN_HOUSES = [{"Id": "o1", "Date": "11/01/2026", "StartTime": "10:00 am"}]


class FakeProvider:
    """Provider returning canned payloads and recording every call."""

    def __init__(self, payloads=None, failures=(), delay=0.0):
        self.payloads = payloads or {
            "photos": PHOTOS,
            "virtual_tours": TOURS,
            "open_houses": OPEN_HOUSES,
        }
        self.failures = set(failures)
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, listing_id, field):
        with self._lock:
            self.calls.append((listing_id, field))
        if self.delay:
            time.sleep(self.delay)
        if field in self.failures:
            raise RuntimeError(f"{field} endpoint down")
        return list(self.payloads.get(field, []))


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed database so worker threads get their own connections."""
    engine = build_engine(
        f"sqlite:///{tmp_path / 'details.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()


def spy_repository():
    repository = ListingDetailRepository()
    repository.insert_field = Mock(wraps=repository.insert_field)
    repository.update_field = Mock(wraps=repository.update_field)
    return repository


def listing(listing_id="L1", tours=0, open_houses=0, **extra):
    return {
        "id": listing_id,
        "virtualtourscount": tours,
        "openhousescount": open_houses,
        **extra,
    }


class TestDetailEnrichmentCache:
    """Tests for DetailEnrichmentCache"""

    def test_miss_then_hit(self, session_factory):
        """First enrichment fetches and inserts; the second is served from cache"""
        provider = FakeProvider()
        repository = spy_repository()
        cache = DetailEnrichmentCache(provider, session_factory, repository, max_workers=1)

        first = cache.enrich(listing())

        assert first["photos"] == PHOTOS
        assert first["virtual_tours"] == []
        assert first["open_houses"] == []
        assert provider.calls == [("L1", "photos")]
        assert repository.insert_field.call_count == 1
        assert repository.update_field.call_count == 0

        second = cache.enrich(listing())

        assert second["photos"] == PHOTOS
        assert provider.calls == [("L1", "photos")]
        assert repository.insert_field.call_count == 1

    def test_zero_tour_count_never_fetches_tours(self, session_factory):
        provider = FakeProvider()
        cache = DetailEnrichmentCache(provider, session_factory, max_workers=1)

        enriched = cache.enrich(listing(tours=0, open_houses=2))

        assert ("L1", "virtual_tours") not in provider.calls
        assert enriched["virtual_tours"] == []
        assert enriched["open_houses"] == OPEN_HOUSES

    @pytest.mark.parametrize("count", [None, "", "abc", -1])
    def test_missing_or_bad_count_treated_as_zero(self, session_factory, count):
        provider = FakeProvider()
        cache = DetailEnrichmentCache(provider, session_factory, max_workers=1)

        cache.enrich(listing(tours=count, open_houses=count))

        assert provider.calls == [("L1", "photos")]

    def test_full_miss_inserts_then_updates(self, session_factory):
        provider = FakeProvider()
        repository = spy_repository()
        cache = DetailEnrichmentCache(provider, session_factory, repository, max_workers=1)

        enriched = cache.enrich(listing(tours=1, open_houses=1))

        assert enriched["photos"] == PHOTOS
        assert enriched["virtual_tours"] == TOURS
        assert enriched["open_houses"] == OPEN_HOUSES
        assert repository.insert_field.call_count == 1
        assert repository.update_field.call_count == 2

        with session_factory() as session:
            row = ListingDetailRepository().get_by_listing_id(session, "L1")
            assert row.photos == PHOTOS
            assert row.virtual_tours == TOURS
            assert row.open_houses == OPEN_HOUSES

    def test_partial_cache_fetches_only_missing_fields(self, session_factory):
        with session_factory() as session:
            ListingDetailRepository().insert_field(session, "L1", "photos", PHOTOS)
            session.commit()

        provider = FakeProvider()
        cache = DetailEnrichmentCache(provider, session_factory, max_workers=1)

        enriched = cache.enrich(listing(tours=1))

        assert provider.calls == [("L1", "virtual_tours")]
        assert enriched["photos"] == PHOTOS
        assert enriched["virtual_tours"] == TOURS

    def test_empty_cached_payload_is_refetched(self, session_factory):
        with session_factory() as session:
            ListingDetailRepository().insert_field(session, "L1", "photos", [])
            session.commit()

        provider = FakeProvider()
        cache = DetailEnrichmentCache(provider, session_factory, max_workers=1)

        assert cache.enrich(listing())["photos"] == PHOTOS
        assert provider.calls == [("L1", "photos")]

    def test_provider_failure_isolated_to_field(self, session_factory):
        provider = FakeProvider(failures={"virtual_tours"})
        cache = DetailEnrichmentCache(provider, session_factory, max_workers=1)

        enriched = cache.enrich(listing(tours=1, open_houses=1))

        assert enriched["photos"] == PHOTOS
        assert enriched["virtual_tours"] == []
        assert enriched["open_houses"] == OPEN_HOUSES

    def test_non_list_provider_result_becomes_empty(self, session_factory):
        provider = FakeProvider(payloads={"photos": None})
        provider.fetch = Mock(return_value={"unexpected": True})
        cache = DetailEnrichmentCache(provider, session_factory, max_workers=1)

        assert cache.enrich(listing())["photos"] == []

    def test_write_failure_still_returns_data(self, session_factory):
        repository = Mock()
        repository.get_by_listing_id.return_value = None
        repository.insert_field.side_effect = SQLAlchemyError("disk full")
        provider = FakeProvider()
        cache = DetailEnrichmentCache(provider, session_factory, repository, max_workers=1)

        enriched = cache.enrich(listing(tours=1))

        assert enriched["photos"] == PHOTOS
        assert enriched["virtual_tours"] == TOURS
        # Row was never created, so every write attempts an insert
        assert repository.insert_field.call_count == 2
        repository.update_field.assert_not_called()

    def test_read_failure_treated_as_miss(self, session_factory):
        repository = spy_repository()
        repository.get_by_listing_id = Mock(side_effect=SQLAlchemyError("connection lost"))
        provider = FakeProvider()
        cache = DetailEnrichmentCache(provider, session_factory, repository, max_workers=1)

        assert cache.enrich(listing())["photos"] == PHOTOS
        assert provider.calls == [("L1", "photos")]

    def test_input_listing_not_mutated(self, session_factory):
        original = listing(city="Loreto")
        cache = DetailEnrichmentCache(FakeProvider(), session_factory, max_workers=1)

        enriched = cache.enrich(original)

        assert "photos" not in original
        assert enriched["city"] == "Loreto"

    def test_enrich_all_preserves_order(self, file_session_factory):
        provider = FakeProvider(delay=0.01)
        cache = DetailEnrichmentCache(provider, file_session_factory, max_workers=4)
        listings = [listing(f"L{i}") for i in range(10)]

        enriched = cache.enrich_all(listings)

        assert [item["id"] for item in enriched] == [f"L{i}" for i in range(10)]
        assert all(item["photos"] == PHOTOS for item in enriched)

    def test_enrich_all_empty(self, session_factory):
        cache = DetailEnrichmentCache(FakeProvider(), session_factory)
        assert cache.enrich_all([]) == []

    def test_workers_see_caller_log_context(self, file_session_factory):
        """Context bound before enrich_all is visible to every worker thread"""
        seen = []

        class ContextRecordingProvider(FakeProvider):
            def fetch(self, listing_id, field):
                seen.append(structlog.contextvars.get_contextvars().get("request_id"))
                return super().fetch(listing_id, field)

        cache = DetailEnrichmentCache(
            ContextRecordingProvider(delay=0.01), file_session_factory, max_workers=4
        )
        structlog.contextvars.bind_contextvars(request_id="req-123")
        try:
            cache.enrich_all([listing(f"L{i}") for i in range(4)])
        finally:
            structlog.contextvars.clear_contextvars()

        assert len(seen) == 4
        assert set(seen) == {"req-123"}

    def test_concurrent_enrichment_of_same_listing(self, file_session_factory):
        """Each field is fetched once even when many threads enrich one listing"""
        provider = FakeProvider(delay=0.02)
        cache = DetailEnrichmentCache(provider, file_session_factory, max_workers=8)

        enriched = cache.enrich_all([listing(tours=1, open_houses=1) for _ in range(8)])

        assert sorted(provider.calls) == [
            ("L1", "open_houses"),
            ("L1", "photos"),
            ("L1", "virtual_tours"),
        ]
        assert all(item["virtual_tours"] == TOURS for item in enriched)


class TestKeyedLocks:
    """Tests for KeyedLocks"""

    def test_locks_released_after_use(self):
        locks = KeyedLocks()

        with locks.hold("L1"):
            assert len(locks) == 1

        assert len(locks) == 0

    def test_same_key_serialized(self):
        locks = KeyedLocks()
        active = []
        overlaps = []

        def work():
            with locks.hold("L1"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                active.pop()

        threads = [threading.Thread(target=work) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []
        assert len(locks) == 0


class TestPayloadHelpers:
    """Tests for parse_payload and declared_count"""

    @pytest.mark.parametrize("raw,expected", [
        (None, []),
        ([{"Id": "p1"}], [{"Id": "p1"}]),
        ({"Id": "p1"}, [{"Id": "p1"}]),
        ('[{"Id": "p1"}]', [{"Id": "p1"}]),
        ('{"Id": "p1"}', [{"Id": "p1"}]),
        ("not json", []),
        (42, []),
    ])
    def test_parse_payload(self, raw, expected):
        assert parse_payload(raw) == expected

    def test_declared_count(self):
        assert declared_count({"virtualtourscount": 3}, "virtualtourscount") == 3
        assert declared_count({"virtualtourscount": "2"}, "virtualtourscount") == 2
        assert declared_count({}, "virtualtourscount") == 0
