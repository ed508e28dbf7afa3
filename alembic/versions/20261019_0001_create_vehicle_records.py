"""create vehicle_records table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vehicle_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vehicle_type", sa.String(length=16), nullable=False),
        sa.Column("matricule", sa.String(length=64), nullable=False,
                  comment="Vehicle registration / fleet identifier"),
        sa.Column("region", sa.String(length=128), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.SmallInteger(), nullable=False),
        sa.Column("distance_km", sa.Float(), nullable=False),
        sa.Column("fuel_liters", sa.Float(), nullable=False),
        sa.Column("cost", sa.Float(), nullable=False),
        sa.Column("tonnage", sa.Float(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "vehicle_type",
            "matricule",
            "year",
            "month",
            name="uq_vehicle_records_vehicle_period",
        ),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_vehicle_records_month"),
    )
    op.create_index(
        "ix_vehicle_records_type_year",
        "vehicle_records",
        ["vehicle_type", "year"],
        unique=False,
    )
    op.create_index(
        "ix_vehicle_records_type_year_region",
        "vehicle_records",
        ["vehicle_type", "year", "region"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_vehicle_records_type_year_region", table_name="vehicle_records")
    op.drop_index("ix_vehicle_records_type_year", table_name="vehicle_records")
    op.drop_table("vehicle_records")
