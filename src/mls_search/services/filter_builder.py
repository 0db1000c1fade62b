"""
Listing Filter Builder

Turns a location MatchResult and the remaining search filters into bound
SQLAlchemy predicates over the listing table. Values are always passed as
bind parameters, never spliced into SQL text.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.sql import ColumnElement, Select

from src.mls_search.db.models import Listing
from src.mls_search.models.location import (
    AmbiguousMatch,
    LocationField,
    MatchResult,
    NoMatch,
    SingleMatch,
)
from src.mls_search.models.search import SearchRequest

# Fixed page size; results are always ordered by price, highest first
PAGE_SIZE = 50

# Literal inputs that bypass resolution: input -> (level, substring)
LOCATION_ALIASES = {
    "all la paz": (LocationField.AREA, "La Paz"),
}


@dataclass(frozen=True, eq=False)
class LocationFilter:
    """
    Location predicate fragment.

    Attributes:
        clause: SQLAlchemy predicate, or None when location is unconstrained
        description: Human-readable summary of the predicate
    """
    clause: Optional[ColumnElement]
    description: str

    def compiled(self) -> dict:
        """SQL text with bind parameter names, plus the bound values."""
        if self.clause is None:
            return {"sql": None, "params": {}}
        compiled = self.clause.compile()
        return {"sql": str(compiled), "params": dict(compiled.params)}


@dataclass(frozen=True, eq=False)
class ListingQuery:
    """
    Composed listing query: conjoined predicates, price ordering and paging.
    """
    location: LocationFilter
    clauses: Tuple[ColumnElement, ...] = field(default_factory=tuple)
    limit: int = PAGE_SIZE
    offset: int = 0

    def to_statement(self) -> Select:
        statement = select(Listing)
        if self.clauses:
            statement = statement.where(and_(*self.clauses))
        return (
            statement
            .order_by(Listing.currentpricepublic.desc())
            .limit(self.limit)
            .offset(self.offset)
        )


def column_for(location_field: LocationField):
    """Listing column holding a hierarchy level."""
    return getattr(Listing, location_field.column_name)


def is_location_alias(location: Optional[str]) -> bool:
    return bool(location) and location.strip().lower() in LOCATION_ALIASES


def build_location_filter(
    result: Optional[MatchResult],
    location: Optional[str] = None,
) -> LocationFilter:
    """
    Build the location predicate for a resolution result.

    Args:
        result: Resolution result, or None when no location was resolved
        location: Original location text (used for aliases and the no-match fallback)

    Returns:
        LocationFilter

    Raises:
        TypeError: If result is not one of the MatchResult variants
    """
    text = location.strip() if location else ""

    if is_location_alias(text):
        alias_field, alias_value = LOCATION_ALIASES[text.lower()]
        return LocationFilter(
            clause=column_for(alias_field).contains(alias_value, autoescape=True),
            description=f"Alias '{text}': {alias_field.value} contains '{alias_value}'",
        )

    if result is None:
        return LocationFilter(None, "No location filter")

    if isinstance(result, NoMatch):
        if not text:
            return LocationFilter(None, "No location filter")
        return LocationFilter(
            clause=or_(
                *(column_for(f).contains(text, autoescape=True) for f in LocationField)
            ),
            description="No match found - substring search on city, area and subdivision",
        )

    if isinstance(result, SingleMatch):
        if result.ambiguous_parents:
            target_field, target_value = result.field, result.value
        else:
            target_field, target_value = _most_specific(result)
        return LocationFilter(
            clause=column_for(target_field) == target_value,
            description=(
                f"Clear {result.match_type.value} match on {result.field.value}: "
                f"{target_field.value} = '{target_value}'"
            ),
        )

    if isinstance(result, AmbiguousMatch):
        return LocationFilter(
            clause=column_for(result.field).in_(list(result.candidates)),
            description=(
                f"Ambiguous {result.field.value} match - searching across "
                f"{len(result.candidates)} values"
            ),
        )

    raise TypeError(f"Unsupported match result: {type(result).__name__}")


def _most_specific(result: SingleMatch) -> Tuple[LocationField, str]:
    if result.subdivision:
        return LocationField.SUBDIVISION, result.subdivision
    if result.area:
        return LocationField.AREA, result.area
    return LocationField.CITY, result.city


def build_filters(
    request: SearchRequest,
    result: Optional[MatchResult] = None,
) -> ListingQuery:
    """
    Build the full listing query for a search request.

    Args:
        request: Search filters
        result: Location resolution result for request.location (None if not resolved)

    Returns:
        ListingQuery with location and attribute predicates conjoined
    """
    location_filter = build_location_filter(result, request.location)
    clauses: List[ColumnElement] = []

    if location_filter.clause is not None:
        clauses.append(location_filter.clause)

    if request.property_type:
        clauses.append(Listing.propertytypelabel == request.property_type)

    price_bounds = request.price_bounds()
    if price_bounds is not None:
        min_price, max_price = price_bounds
        clauses.append(Listing.currentpricepublic.between(min_price, max_price))

    if request.bedrooms:
        clauses.append(Listing.bedstotal >= request.bedrooms)
    if request.bathrooms:
        clauses.append(Listing.bathsfull >= request.bathrooms)

    # Amenity flags
    if request.cfe:
        clauses.append(Listing.electric.contains("CFE"))
    if request.pool:
        clauses.append(Listing.poolfeatures.contains("Pool"))
    if request.new_listing:
        clauses.append(Listing.majorchangetype == "New Listing")
    if request.price_reduced:
        clauses.append(Listing.majorchangetype == "Price Reduced")
    if request.open_house:
        clauses.append(Listing.openhousescount > 0)
    if request.virtual_tour:
        clauses.append(Listing.virtualtourscount > 0)

    return ListingQuery(
        location=location_filter,
        clauses=tuple(clauses),
        limit=PAGE_SIZE,
        offset=(request.page - 1) * PAGE_SIZE,
    )
