"""create result and parameters tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

from gridsuite.dsa.core.config import settings

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

SCHEMA = settings.database_schema


def upgrade() -> None:
    op.create_table(
        "dynamic_security_analysis_result",
        sa.Column("result_uuid", sa.Uuid(), primary_key=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("debug_file_location", sa.String(), nullable=True),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_dynamic_security_analysis_result_status",
        "dynamic_security_analysis_result",
        ["status"],
        schema=SCHEMA,
    )
    op.create_table(
        "dynamic_security_analysis_parameters",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("provider", sa.String(), nullable=True),
        sa.Column("scenario_duration", sa.Float(), nullable=False),
        sa.Column("contingencies_start_time", sa.Float(), nullable=False),
        sa.Column("contingency_list_ids", sa.JSON(), nullable=False),
        schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_table("dynamic_security_analysis_parameters", schema=SCHEMA)
    op.drop_index("ix_dynamic_security_analysis_result_status", table_name="dynamic_security_analysis_result", schema=SCHEMA)
    op.drop_table("dynamic_security_analysis_result", schema=SCHEMA)
