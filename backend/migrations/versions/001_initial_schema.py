"""Initial schema: franchise_import_jobs, franchise_cache.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Import jobs
    op.create_table(
        "franchise_import_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="running", index=True),
        sa.Column("processed_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("total_count", sa.Integer),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.Column("error_message", sa.Text),
        sa.Column("trigger", sa.String(20), nullable=False),
        sa.Column("requested_by", sa.String(255)),
    )
    op.create_index("idx_import_job_status_started", "franchise_import_jobs", ["status", "started_at"])

    # Cached franchise rows, one generation per job
    op.create_table(
        "franchise_cache",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("fid", sa.String(64), index=True),
        sa.Column("name", sa.String(255)),
        sa.Column("company", sa.String(255)),
        sa.Column("company_address", sa.Text),
        sa.Column("source_created_at", sa.String(64)),
        sa.Column("source_updated_at", sa.String(64)),
        sa.Column("outlets", sa.JSON, nullable=False),
        sa.Column("raw_payload", sa.JSON),
        sa.Column("outlet_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("active_outlet_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("import_index", sa.Integer, nullable=False),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("franchise_import_jobs.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("false")),
    )
    op.create_index(
        "idx_franchise_cache_active_index",
        "franchise_cache",
        ["is_active", sa.text("import_index DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_franchise_cache_active_index", table_name="franchise_cache")
    op.drop_table("franchise_cache")
    op.drop_index("idx_import_job_status_started", table_name="franchise_import_jobs")
    op.drop_table("franchise_import_jobs")
