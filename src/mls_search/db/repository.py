"""
Repository Pattern for Data Access

Provides CRUD operations and domain-specific queries for listings and
cached listing details.
"""
from datetime import datetime, timezone
from typing import List, Optional, Any, Type, TypeVar

from sqlalchemy import select, or_, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from src.mls_search.db.models import Listing, ListingDetail
from src.mls_search.models.location import GeographyRecord
from src.mls_search.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

# Payload columns of mls_properties_details and their timestamp columns
DETAIL_FIELDS = {
    "photos": "photos_edited",
    "virtual_tours": "virtual_tours_edited",
    "open_houses": "open_houses_edited",
}


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.debug("repository_created", model=self.model.__name__)
        return instance


class ListingRepository(BaseRepository):
    """Repository for Listing model with search and geography queries."""

    def __init__(self):
        super().__init__(Listing)

    def get_distinct_geography(self, session: Session) -> List[GeographyRecord]:
        """
        Load every distinct (city, area, subdivision) combination.

        Rows where all three fields are NULL are skipped. Results are ordered
        by city, area, subdivision so callers see a stable order.

        Args:
            session: Database session

        Returns:
            List of GeographyRecord
        """
        query = (
            select(Listing.city, Listing.mlsareamajor, Listing.subdivisionname)
            .where(
                or_(
                    Listing.city.isnot(None),
                    Listing.mlsareamajor.isnot(None),
                    Listing.subdivisionname.isnot(None),
                )
            )
            .distinct()
            .order_by(Listing.city, Listing.mlsareamajor, Listing.subdivisionname)
        )

        rows = session.execute(query).all()
        records = [
            GeographyRecord(city=city, area=area, subdivision=subdivision)
            for city, area, subdivision in rows
        ]
        logger.debug("repository_geography_loaded", count=len(records))
        return records

    def search(self, session: Session, statement: Select) -> List[Listing]:
        """
        Run a composed listing query.

        Args:
            session: Database session
            statement: SELECT over Listing with filters, ordering and limit applied

        Returns:
            List of Listing instances
        """
        listings = list(session.execute(statement).scalars().all())
        logger.debug("repository_search", count=len(listings))
        return listings


class ListingDetailRepository(BaseRepository):
    """Repository for cached listing media (photos, virtual tours, open houses)."""

    def __init__(self):
        super().__init__(ListingDetail)

    def get_by_listing_id(self, session: Session, listing_id: str) -> Optional[ListingDetail]:
        """
        Get the cached detail row for a listing.

        Args:
            session: Database session
            listing_id: Listing id

        Returns:
            ListingDetail or None
        """
        return self.get_by_id(session, listing_id)

    def insert_field(
        self,
        session: Session,
        listing_id: str,
        field: str,
        payload: List[Any],
    ) -> ListingDetail:
        """
        Create the detail row for a listing with one payload field set.

        Args:
            session: Database session
            listing_id: Listing id
            field: Payload column (photos, virtual_tours, open_houses)
            payload: Provider records to store

        Returns:
            Created ListingDetail
        """
        timestamp_field = self._timestamp_field(field)
        now = datetime.now(timezone.utc)

        detail = self.create(
            session,
            mlsid=listing_id,
            time_entered=now,
            **{field: payload, timestamp_field: now},
        )
        logger.info("detail_row_inserted", listing_id=listing_id, field=field, items=len(payload))
        return detail

    def update_field(
        self,
        session: Session,
        listing_id: str,
        field: str,
        payload: List[Any],
    ) -> int:
        """
        Replace one payload field of an existing detail row and touch its timestamp.

        Args:
            session: Database session
            listing_id: Listing id
            field: Payload column (photos, virtual_tours, open_houses)
            payload: Provider records to store

        Returns:
            Number of rows updated
        """
        timestamp_field = self._timestamp_field(field)

        result = session.execute(
            update(ListingDetail)
            .where(ListingDetail.mlsid == listing_id)
            .values({field: payload, timestamp_field: datetime.now(timezone.utc)})
        )
        logger.info(
            "detail_row_updated",
            listing_id=listing_id,
            field=field,
            items=len(payload),
            rows=result.rowcount
        )
        return result.rowcount

    @staticmethod
    def _timestamp_field(field: str) -> str:
        try:
            return DETAIL_FIELDS[field]
        except KeyError:
            raise ValueError(f"Unknown detail field: {field}")
