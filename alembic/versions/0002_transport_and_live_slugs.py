from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from vista_api.core.database import Base
import vista_api.models  # noqa: F401

revision = "0002_transport_and_live_slugs"
down_revision = "0001_create_schema"
branch_labels = None
depends_on = None

TRANSPORT_TABLES = (
    "transport_types",
    "transports",
    "transport_images",
    "transport_agencies",
    "transport_agency_images",
)

SLUGGED_TABLES = (
    "activities",
    "events",
    "guides",
    "shoppings",
    "food_and_beverages",
    "local_artists",
    "room_types",
    "homestays",
    "transport_types",
    "transports",
    "transport_agencies",
)

LIVE_ROWS = sa.text("deleted_at IS NULL")


def _index_name(table: str) -> str:
    return f"uq_{table}_live_slug"


def upgrade() -> None:
    bind = op.get_bind()

    # databases stamped at 0001 before these tables existed
    for name in TRANSPORT_TABLES:
        Base.metadata.tables[name].create(bind=bind, checkfirst=True)

    inspector = sa.inspect(bind)
    for table in SLUGGED_TABLES:
        existing = {index["name"] for index in inspector.get_indexes(table)}
        if _index_name(table) in existing:
            continue
        op.create_index(
            _index_name(table),
            table,
            ["slug"],
            unique=True,
            sqlite_where=LIVE_ROWS,
            postgresql_where=LIVE_ROWS,
        )


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    for table in SLUGGED_TABLES:
        if not inspector.has_table(table):
            continue
        existing = {index["name"] for index in inspector.get_indexes(table)}
        if _index_name(table) in existing:
            op.drop_index(_index_name(table), table_name=table)

    for name in reversed(TRANSPORT_TABLES):
        Base.metadata.tables[name].drop(bind=bind, checkfirst=True)
