"""create_listing_details_cache

Create the mls_properties_details table caching provider media per listing.

Changes:
- One row per listing id (mlsid)
- JSON payload columns for photos, virtual tours and open houses
- Per-field last-updated timestamps

Revision ID: 3b7e1c9d2a40
Revises:
Create Date: 2026-10-19 09:12:44.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b7e1c9d2a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

payload_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create the listing details cache table."""
    op.create_table(
        'mls_properties_details',
        sa.Column('mlsid', sa.String(length=50), nullable=False,
                  comment='Listing id (mls_properties.id)'),
        sa.Column('photos', payload_type, nullable=True),
        sa.Column('virtual_tours', payload_type, nullable=True),
        sa.Column('open_houses', payload_type, nullable=True),
        sa.Column('time_entered', sa.DateTime(timezone=True), nullable=True,
                  comment='When the row was first cached'),
        sa.Column('photos_edited', sa.DateTime(timezone=True), nullable=True),
        sa.Column('virtual_tours_edited', sa.DateTime(timezone=True), nullable=True),
        sa.Column('open_houses_edited', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('mlsid')
    )


def downgrade() -> None:
    """Drop the listing details cache table."""
    op.drop_table('mls_properties_details')
