"""
Location Resolution Service

Maps free-text (possibly misspelled) location input onto the
city → area → subdivision hierarchy.

Every known value is classified into a single tier, first match wins:

    exact      case-insensitive equality
    prefix     value starts with the input
    substring  value contains the input, or the input contains the value
    fuzzy      edit distance within min(3, len(value) // 3); inputs of 4+ chars only

Tiers are then resolved in that order. An exact hit prefers the most
specific level (subdivision, area, city). Prefix and substring hits are
pooled across levels and prefer cities, since a broad city filter recovers
best from partial input. Fuzzy hits are pooled and ranked by distance.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from src.mls_search.models.location import (
    AmbiguousMatch,
    GeographyRecord,
    LocationField,
    MatchResult,
    MatchType,
    NoMatch,
    SingleMatch,
)
from src.mls_search.services.geography_cache import GeographyLookupCache
from src.mls_search.utils.logger import get_logger
from src.mls_search.utils.string_distance import fuzzy_threshold, levenshtein_distance

logger = get_logger(__name__)

FUZZY_MIN_INPUT_LENGTH = 4
FUZZY_MAX_DISTANCE = 3

# (single, ambiguous) confidence per tier; fuzzy is distance-based
TIER_CONFIDENCE = {
    MatchType.EXACT: (1.0, 1.0),
    MatchType.PREFIX: (0.9, 0.85),
    MatchType.SUBSTRING: (0.8, 0.75),
}

# Most specific first
SPECIFICITY_ORDER = (LocationField.SUBDIVISION, LocationField.AREA, LocationField.CITY)
# Broadest first
POOL_ORDER = (LocationField.CITY, LocationField.AREA, LocationField.SUBDIVISION)


@dataclass(frozen=True)
class _Hit:
    field: LocationField
    value: str
    distance: int = 0


def fuzzy_confidence(distance: int) -> float:
    """Confidence for a fuzzy hit: 0.15 off per edit, floored at 0.5."""
    return round(max(0.5, 1 - 0.15 * distance), 2)


class LocationResolver:
    """
    Resolves location text against the geography lookup cache.

    Resolution is deterministic: the same input against the same cache
    snapshot always yields an equal MatchResult.
    """

    def __init__(self, cache: GeographyLookupCache):
        """
        Args:
            cache: Geography lookup cache (loaded on first resolve)
        """
        self.cache = cache

    def resolve(self, user_input: str) -> MatchResult:
        """
        Resolve location text to a MatchResult.

        Args:
            user_input: Free-text location (e.g. "La Paz", "Pedrigal")

        Returns:
            NoMatch, SingleMatch or AmbiguousMatch

        Raises:
            TypeError: If user_input is not a string
            Exception: Backing-store errors while loading the cache
        """
        if not isinstance(user_input, str):
            raise TypeError(f"location must be a string, got {type(user_input).__name__}")

        normalized = user_input.strip().lower()
        if not normalized:
            logger.debug("location_input_empty")
            return NoMatch()

        records = self.cache.get_records()
        hits = self._classify(normalized, records)

        result = (
            self._resolve_exact(hits[MatchType.EXACT], records)
            or self._resolve_pooled(MatchType.PREFIX, hits[MatchType.PREFIX])
            or self._resolve_pooled(MatchType.SUBSTRING, hits[MatchType.SUBSTRING])
            or self._resolve_fuzzy(hits[MatchType.FUZZY])
            or NoMatch()
        )

        self._log_result(user_input, result)
        return result

    def _classify(
        self,
        normalized: str,
        records: Sequence[GeographyRecord],
    ) -> Dict[MatchType, Dict[LocationField, List[_Hit]]]:
        hits = {
            match_type: {location_field: [] for location_field in POOL_ORDER}
            for match_type in MatchType
        }
        allow_fuzzy = len(normalized) >= FUZZY_MIN_INPUT_LENGTH

        for location_field in POOL_ORDER:
            for value in distinct_values(records, location_field):
                candidate = value.strip().lower()

                if candidate == normalized:
                    hits[MatchType.EXACT][location_field].append(_Hit(location_field, value))
                elif candidate.startswith(normalized):
                    hits[MatchType.PREFIX][location_field].append(_Hit(location_field, value))
                elif normalized in candidate or candidate in normalized:
                    hits[MatchType.SUBSTRING][location_field].append(_Hit(location_field, value))
                elif allow_fuzzy:
                    distance = levenshtein_distance(normalized, candidate)
                    if distance <= fuzzy_threshold(candidate, FUZZY_MAX_DISTANCE):
                        hits[MatchType.FUZZY][location_field].append(
                            _Hit(location_field, value, distance)
                        )

        return hits

    def _resolve_exact(
        self,
        exact_hits: Dict[LocationField, List[_Hit]],
        records: Sequence[GeographyRecord],
    ) -> Optional[MatchResult]:
        for location_field in SPECIFICITY_ORDER:
            field_hits = exact_hits[location_field]
            if len(field_hits) == 1:
                return self._exact_single(location_field, field_hits[0].value, records)
            if len(field_hits) > 1:
                return AmbiguousMatch(
                    field=location_field,
                    match_type=MatchType.EXACT,
                    confidence=TIER_CONFIDENCE[MatchType.EXACT][1],
                    candidates=tuple(hit.value for hit in field_hits),
                )
        return None

    def _exact_single(
        self,
        location_field: LocationField,
        value: str,
        records: Sequence[GeographyRecord],
    ) -> SingleMatch:
        """Build an exact SingleMatch, deriving parents the value uniquely implies."""
        confidence = TIER_CONFIDENCE[MatchType.EXACT][0]
        if location_field is LocationField.CITY:
            return SingleMatch(location_field, value, MatchType.EXACT, confidence)

        key = value.strip().lower()
        sharing = [
            record for record in records
            if (record.value_for(location_field) or "").strip().lower() == key
        ]
        cities = _unique(record.city for record in sharing)
        areas = _unique(record.area for record in sharing) if location_field is LocationField.SUBDIVISION else ()

        return SingleMatch(
            field=location_field,
            value=value,
            match_type=MatchType.EXACT,
            confidence=confidence,
            derived_city=cities[0] if len(cities) == 1 else None,
            derived_area=areas[0] if len(areas) == 1 else None,
            ambiguous_parents=len(cities) > 1 or len(areas) > 1,
            parent_cities=cities,
            parent_areas=areas,
        )

    def _resolve_pooled(
        self,
        match_type: MatchType,
        tier_hits: Dict[LocationField, List[_Hit]],
    ) -> Optional[MatchResult]:
        pool = [hit for location_field in POOL_ORDER for hit in tier_hits[location_field]]
        if not pool:
            return None

        single_confidence, ambiguous_confidence = TIER_CONFIDENCE[match_type]
        if len(pool) == 1:
            return SingleMatch(pool[0].field, pool[0].value, match_type, single_confidence)

        city_hits = [hit for hit in pool if hit.field is LocationField.CITY]
        if len(city_hits) == 1:
            return SingleMatch(LocationField.CITY, city_hits[0].value, match_type, single_confidence)
        if city_hits:
            return AmbiguousMatch(
                field=LocationField.CITY,
                match_type=match_type,
                confidence=ambiguous_confidence,
                candidates=tuple(hit.value for hit in city_hits),
            )

        return AmbiguousMatch(
            field=pool[0].field,
            match_type=match_type,
            confidence=ambiguous_confidence,
            candidates=tuple(hit.value for hit in pool),
        )

    def _resolve_fuzzy(
        self,
        fuzzy_hits: Dict[LocationField, List[_Hit]],
    ) -> Optional[MatchResult]:
        pool = [hit for location_field in POOL_ORDER for hit in fuzzy_hits[location_field]]
        if not pool:
            return None

        # sorted() is stable, so ties keep city → area → subdivision order
        pool = sorted(pool, key=lambda hit: hit.distance)
        best = pool[0]
        confidence = fuzzy_confidence(best.distance)

        if len(pool) == 1:
            return SingleMatch(best.field, best.value, MatchType.FUZZY, confidence)

        return AmbiguousMatch(
            field=best.field,
            match_type=MatchType.FUZZY,
            confidence=confidence,
            candidates=tuple(hit.value for hit in pool),
        )

    @staticmethod
    def _log_result(user_input: str, result: MatchResult) -> None:
        if isinstance(result, NoMatch):
            logger.info("location_not_matched", location=user_input)
            return

        logger.info(
            "location_resolved",
            location=user_input,
            result=type(result).__name__,
            field=result.field.value,
            match_type=result.match_type.value,
            confidence=result.confidence,
        )


def distinct_values(records: Sequence[GeographyRecord], location_field: LocationField) -> List[str]:
    """
    Distinct non-empty values of one level, in first-seen order.

    Args:
        records: Geography records
        location_field: Hierarchy level to read

    Returns:
        List of values
    """
    return list(_unique(record.value_for(location_field) for record in records))


def _unique(values) -> tuple:
    seen = {}
    for value in values:
        if value and value.strip() and value not in seen:
            seen[value] = None
    return tuple(seen)
