"""
Search Router

Endpoints for listing search and location match previews.
"""
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.mls_search.api.auth import verify_api_token
from src.mls_search.api.dependencies import get_db, get_detail_enricher, get_location_resolver
from src.mls_search.api.schemas import (
    ErrorResponse,
    LocationFilterPreview,
    LocationMatchRequest,
    LocationMatchResponse,
    SearchResponse,
)
from src.mls_search.enrichment.detail_cache import DetailEnrichmentCache
from src.mls_search.models.search import SearchRequest
from src.mls_search.services.filter_builder import build_location_filter, is_location_alias
from src.mls_search.services.listing_search import ListingSearchError, ListingSearchService
from src.mls_search.services.location_resolver import LocationResolver
from src.mls_search.utils.logger import bind_search_context, get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["search"],
    dependencies=[Depends(verify_api_token)],
)


def _error_response(message: str, error: str) -> JSONResponse:
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=500, content=body.model_dump())


@router.post("/search", response_model=SearchResponse)
def search_listings(
    request: SearchRequest,
    db: Session = Depends(get_db),
    resolver: LocationResolver = Depends(get_location_resolver),
    enricher: DetailEnrichmentCache = Depends(get_detail_enricher),
):
    """
    Search listings.

    Args:
        request: Search filters (location text, price range, amenities, page)
        db: Database session
        resolver: Location resolver
        enricher: Detail enrichment cache

    Returns:
        Up to 50 enriched listings, highest price first
    """
    bind_search_context(request_id=uuid.uuid4().hex, location=request.location)
    logger.info("search_request_received", page=request.page)

    service = ListingSearchService(db, resolver, enricher)
    try:
        result = service.search(request)
    except ListingSearchError as e:
        cause = e.__cause__ or e
        return _error_response(str(e), str(cause))

    return SearchResponse(data=result.listings)


@router.post("/locations/match", response_model=LocationMatchResponse)
def match_location(
    request: LocationMatchRequest,
    resolver: LocationResolver = Depends(get_location_resolver),
):
    """
    Resolve location text without running a search.

    Args:
        request: Location text
        resolver: Location resolver

    Returns:
        Match result and the location filter a search would apply
    """
    match = None
    try:
        if not is_location_alias(request.location):
            match = resolver.resolve(request.location)
    except SQLAlchemyError as e:
        logger.error("location_match_failed", error=str(e))
        return _error_response("Failed to load geography", str(e))

    location_filter = build_location_filter(match, request.location)

    return LocationMatchResponse(
        input=request.location,
        match_result=match.to_dict() if match is not None else {"kind": "alias"},
        suggested_filter=LocationFilterPreview(
            description=location_filter.description,
            **location_filter.compiled(),
        ),
    )
