"""
SQLAlchemy ORM Models

The MLS listing feed table and the local cache of listing media details.
Listing columns keep the feed's lowercase names since they are returned
to API clients unchanged.
"""
from datetime import datetime
from typing import Optional, Any

from sqlalchemy import String, Integer, Numeric, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.mls_search.db.base import Base, JSONPayload


class Listing(Base):
    """
    MLS property listing (replicated feed, read-only for this service).
    """
    __tablename__ = "mls_properties"

    id: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        comment="Spark listing key, used for provider lookups"
    )

    # Identifiers
    mlsid: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    listingid: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    originatingsystemlistingid: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Geography hierarchy
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    mlsareamajor: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="MLS major area"
    )
    subdivisionname: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    postalcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=True)

    # Address
    streetname: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    streetnumberinteger: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    streetadditionalinfo: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    unparsedaddress: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    unparsedfirstlineaddress: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Classification and price
    propertyclass: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    propertytypelabel: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    currentpricepublic: Mapped[Optional[float]] = mapped_column(
        Numeric(14, 2, asdecimal=False),
        nullable=True
    )
    majorchangetype: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="e.g. 'New Listing', 'Price Reduced'"
    )

    # Structure
    buildingareatotal: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    lotsizedimensions: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    roomstotal: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bedstotal: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bathsfull: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bathroomstotaldecimal: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    yearbuilt: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Features and remarks
    interiorfeatures: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    exteriorfeatures: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    patioandporchfeatures: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    poolfeatures: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    kitchenappliances: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    architecturalstyle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    electric: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    petsallowed: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    publicremarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Declared media counts
    photoscount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    virtualtourscount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    openhousescount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_mls_properties_city", "city"),
        Index("idx_mls_properties_mlsareamajor", "mlsareamajor"),
        Index("idx_mls_properties_subdivisionname", "subdivisionname"),
        Index("idx_mls_properties_price", "currentpricepublic"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the fields returned to API clients."""
        return {name: getattr(self, name) for name in LISTING_FIELDS}

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, city={self.city}, price={self.currentpricepublic})>"


# Fields returned by searches, in response order
LISTING_FIELDS = (
    "id", "mlsid", "listingid", "originatingsystemlistingid",
    "city", "mlsareamajor", "subdivisionname", "postalcode",
    "buildingareatotal", "propertyclass", "propertytypelabel", "lotsizedimensions",
    "latitude", "longitude", "interiorfeatures", "electric", "architecturalstyle",
    "patioandporchfeatures", "poolfeatures", "exteriorfeatures", "roomstotal",
    "kitchenappliances", "bedstotal", "bathsfull", "bathroomstotaldecimal",
    "publicremarks", "petsallowed", "currentpricepublic", "majorchangetype",
    "streetname", "streetnumberinteger", "streetadditionalinfo",
    "unparsedaddress", "unparsedfirstlineaddress",
    "photoscount", "virtualtourscount", "openhousescount", "yearbuilt",
)


class ListingDetail(Base):
    """
    Cached provider media for a listing.

    One row per listing id. Each payload column has its own last-updated
    timestamp. Rows are created on the first cache miss and updated on later
    misses, never deleted.
    """
    __tablename__ = "mls_properties_details"

    mlsid: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        comment="Listing id (mls_properties.id)"
    )
    photos: Mapped[Optional[Any]] = mapped_column(JSONPayload, nullable=True)
    virtual_tours: Mapped[Optional[Any]] = mapped_column(JSONPayload, nullable=True)
    open_houses: Mapped[Optional[Any]] = mapped_column(JSONPayload, nullable=True)

    time_entered: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the row was first cached"
    )
    photos_edited: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    virtual_tours_edited: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    open_houses_edited: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<ListingDetail(mlsid={self.mlsid})>"
