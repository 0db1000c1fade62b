"""
Search Request Data Models

Pydantic model for the structured search payload sent by the frontend.
"""
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Ceiling used when a price range has no upper bound
MAX_PRICE = 999_999_999


class SearchRequest(BaseModel):
    """
    Listing search filters.

    Accepts the frontend's camelCase keys as well as snake_case names.
    Empty strings are treated as "filter not set".

    Attributes:
        property_type: Property type label (e.g. "Single Family Residence")
        location: Free-text city/area/subdivision input
        price_range: "min-max" string; either side may be empty
        bedrooms: Minimum number of bedrooms
        bathrooms: Minimum number of full bathrooms
        cfe: Only listings on CFE electric service
        pool: Only listings with a pool
        new_listing: Only listings flagged "New Listing"
        price_reduced: Only listings flagged "Price Reduced"
        open_house: Only listings with scheduled open houses
        virtual_tour: Only listings with virtual tours
        page: 1-based result page
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    property_type: Optional[str] = Field(None, alias="propertyType")
    location: Optional[str] = Field(None, description="Free-text location")
    price_range: Optional[str] = Field(None, alias="priceRange")
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    cfe: bool = False
    pool: bool = False
    new_listing: bool = Field(False, alias="newListing")
    price_reduced: bool = Field(False, alias="priceReduced")
    open_house: bool = Field(False, alias="openHouse")
    virtual_tour: bool = Field(False, alias="virtualTour")
    page: int = Field(1, ge=1)

    @field_validator(
        "property_type", "location", "price_range", "bedrooms", "bathrooms",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        """Convert empty form values to None."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("page", mode="before")
    @classmethod
    def default_page(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return 1
        return v

    @field_validator("price_range")
    @classmethod
    def validate_price_range(cls, v: Optional[str]) -> Optional[str]:
        """Reject price ranges that cannot be parsed."""
        if v is not None:
            parse_price_range(v)
        return v

    def price_bounds(self) -> Optional[Tuple[float, float]]:
        """
        Parsed (min, max) price bounds, or None when no range was given.
        """
        if self.price_range is None:
            return None
        return parse_price_range(self.price_range)


def parse_price_range(value: str) -> Tuple[float, float]:
    """
    Parse a "min-max" price range.

    A missing minimum defaults to 0 and a missing maximum to MAX_PRICE.

    Args:
        value: Range string, e.g. "100000-500000" or "250000-"

    Returns:
        Tuple of (min_price, max_price)

    Raises:
        ValueError: If either bound is not a number or min exceeds max
    """
    min_raw, _, max_raw = value.strip().partition("-")
    try:
        min_price = float(min_raw) if min_raw.strip() else 0.0
        max_price = float(max_raw) if max_raw.strip() else float(MAX_PRICE)
    except ValueError:
        raise ValueError(f"Invalid price range: {value!r}")

    if min_price > max_price:
        raise ValueError(f"Price range minimum exceeds maximum: {value!r}")

    return min_price, max_price
