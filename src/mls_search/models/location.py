"""
Location Data Models

Geography records and the result types produced by location resolution.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class LocationField(str, Enum):
    """Levels of the geography hierarchy, broadest first."""
    CITY = "city"
    AREA = "area"
    SUBDIVISION = "subdivision"

    @property
    def column_name(self) -> str:
        """Column holding this level in the listing table."""
        return _COLUMN_NAMES[self]


_COLUMN_NAMES = {
    LocationField.CITY: "city",
    LocationField.AREA: "mlsareamajor",
    LocationField.SUBDIVISION: "subdivisionname",
}


class MatchType(str, Enum):
    """String-matching tier that accepted a candidate, highest priority first."""
    EXACT = "exact"
    PREFIX = "prefix"
    SUBSTRING = "substring"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class GeographyRecord:
    """
    One distinct (city, area, subdivision) combination seen in listing data.

    Attributes:
        city: City name
        area: MLS major area name
        subdivision: Subdivision name
    """
    city: Optional[str] = None
    area: Optional[str] = None
    subdivision: Optional[str] = None

    def value_for(self, location_field: LocationField) -> Optional[str]:
        if location_field is LocationField.CITY:
            return self.city
        if location_field is LocationField.AREA:
            return self.area
        return self.subdivision


@dataclass(frozen=True)
class NoMatch:
    """No geography value matched the input under any tier."""

    def to_dict(self) -> dict:
        return {"kind": "no_match"}


@dataclass(frozen=True)
class SingleMatch:
    """
    Input resolved to exactly one value of one hierarchy level.

    Attributes:
        field: Most specific level that matched
        value: Matched value as stored in the listing data
        match_type: Tier that accepted the value
        confidence: Tier-based confidence in [0.5, 1.0]
        derived_city: City implied by the value, when unique
        derived_area: Area implied by the value, when unique
        ambiguous_parents: True when the value sits under several parents
        parent_cities: Distinct parent cities (filled when ambiguous)
        parent_areas: Distinct parent areas (filled when ambiguous)
    """
    field: LocationField
    value: str
    match_type: MatchType
    confidence: float
    derived_city: Optional[str] = None
    derived_area: Optional[str] = None
    ambiguous_parents: bool = False
    parent_cities: Tuple[str, ...] = ()
    parent_areas: Tuple[str, ...] = ()

    @property
    def subdivision(self) -> Optional[str]:
        return self.value if self.field is LocationField.SUBDIVISION else None

    @property
    def area(self) -> Optional[str]:
        if self.field is LocationField.AREA:
            return self.value
        return self.derived_area

    @property
    def city(self) -> Optional[str]:
        if self.field is LocationField.CITY:
            return self.value
        return self.derived_city

    def to_dict(self) -> dict:
        return {
            "kind": "single_match",
            "field": self.field.value,
            "value": self.value,
            "match_type": self.match_type.value,
            "confidence": self.confidence,
            "city": self.city,
            "area": self.area,
            "subdivision": self.subdivision,
            "ambiguous_parents": self.ambiguous_parents,
            "parent_cities": list(self.parent_cities),
            "parent_areas": list(self.parent_areas),
        }


@dataclass(frozen=True)
class AmbiguousMatch:
    """
    Several values tied at the winning level and tier.

    Attributes:
        field: Level the candidates are filtered on
        match_type: Tier that accepted the candidates
        confidence: Tier-based confidence
        candidates: Matched values, in resolution order
    """
    field: LocationField
    match_type: MatchType
    confidence: float
    candidates: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "kind": "ambiguous_match",
            "field": self.field.value,
            "match_type": self.match_type.value,
            "confidence": self.confidence,
            "candidates": list(self.candidates),
        }


MatchResult = Union[NoMatch, SingleMatch, AmbiguousMatch]
