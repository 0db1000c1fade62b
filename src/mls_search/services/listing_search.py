"""
Listing Search Service

Runs one search request end to end: resolve the location text, build the
listing query, execute it, and enrich the returned listings with media.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.mls_search.db.repository import ListingRepository
from src.mls_search.enrichment.detail_cache import DetailEnrichmentCache
from src.mls_search.models.location import MatchResult
from src.mls_search.models.search import SearchRequest
from src.mls_search.services.filter_builder import ListingQuery, build_filters, is_location_alias
from src.mls_search.services.location_resolver import LocationResolver
from src.mls_search.utils.logger import get_logger

logger = get_logger(__name__)


class ListingSearchError(RuntimeError):
    """The backing store failed while resolving the location or querying listings."""


@dataclass
class SearchResult:
    """
    Outcome of a search request.

    Attributes:
        listings: Enriched listing dicts, highest price first
        match: Location resolution result (None when no location was resolved)
        query: Listing query that was executed
    """
    listings: List[Dict[str, Any]] = field(default_factory=list)
    match: Optional[MatchResult] = None
    query: Optional[ListingQuery] = None


class ListingSearchService:
    """Search orchestration over the resolver, repository and enrichment cache."""

    def __init__(
        self,
        session: Session,
        resolver: LocationResolver,
        enricher: DetailEnrichmentCache,
        repository: Optional[ListingRepository] = None,
    ):
        self.session = session
        self.resolver = resolver
        self.enricher = enricher
        self.repository = repository or ListingRepository()

    def search(self, request: SearchRequest) -> SearchResult:
        """
        Execute a search.

        Args:
            request: Search filters

        Returns:
            SearchResult with enriched listings

        Raises:
            ListingSearchError: If the geography load or the listing query fails
        """
        match = None
        try:
            if request.location and not is_location_alias(request.location):
                match = self.resolver.resolve(request.location)

            query = build_filters(request, match)
            logger.info(
                "listing_query_built",
                location_filter=query.location.description,
                predicates=len(query.clauses),
                page_offset=query.offset
            )
            listings = self.repository.search(self.session, query.to_statement())
        except SQLAlchemyError as e:
            logger.error(
                "listing_search_failed",
                error=str(e),
                error_type=type(e).__name__
            )
            raise ListingSearchError("Failed to fetch properties") from e

        logger.info("listing_query_complete", results=len(listings))
        enriched = self.enricher.enrich_all([listing.to_dict() for listing in listings])

        return SearchResult(listings=enriched, match=match, query=query)
