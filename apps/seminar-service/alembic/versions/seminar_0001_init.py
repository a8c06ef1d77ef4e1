"""seminar_0001_init

Create tables:
- seminars (in the ``seminar`` schema on PostgreSQL)
"""

import sqlalchemy as sa
from alembic import op

from seminar_service.store import SEMINAR_DB_SCHEMA

revision = "seminar_0001"
down_revision = None
branch_labels = None
depends_on = None

INDEXED_COLUMNS = ("organization", "startDate", "endDate", "countryCode")


def _schema() -> str | None:
    return SEMINAR_DB_SCHEMA if op.get_context().dialect.name == "postgresql" else None


def upgrade() -> None:
    schema = _schema()
    op.create_table(
        "seminars",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("instructor", sa.String(255), nullable=False),
        sa.Column("instructorFolded", sa.String(255), nullable=False),
        sa.Column("instructorRank", sa.String(64), nullable=True),
        sa.Column("organization", sa.String(255), nullable=True),
        sa.Column("style", sa.String(64), nullable=True),
        sa.Column("startDate", sa.String(10), nullable=False),
        sa.Column("endDate", sa.String(10), nullable=False),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("city", sa.String(128), nullable=False),
        sa.Column("country", sa.String(128), nullable=False),
        sa.Column("countryCode", sa.String(8), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False, server_default="0"),
        sa.Column("longitude", sa.Float(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("level", sa.String(16), nullable=True),
        sa.Column("registrationUrl", sa.String(500), nullable=True),
        sa.Column("contactEmail", sa.String(255), nullable=True),
        sa.Column("fee", sa.String(128), nullable=True),
        sa.Column("source", sa.String(64), nullable=False),
        sa.Column("sourceUrl", sa.String(500), nullable=True),
        sa.Column("lastScraped", sa.String(64), nullable=False),
        sa.Column("manualOverride", sa.Integer(), nullable=False, server_default="0"),
        schema=schema,
    )
    for column in INDEXED_COLUMNS:
        op.create_index(f"ix_seminars_{column}", "seminars", [column], schema=schema)


def downgrade() -> None:
    schema = _schema()
    for column in INDEXED_COLUMNS:
        op.drop_index(f"ix_seminars_{column}", table_name="seminars", schema=schema)
    op.drop_table("seminars", schema=schema)
