"""create jobs table

Revision ID: 001_create_jobs
Revises:
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa


revision = "001_create_jobs"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("target", sa.Text(), nullable=False),
        sa.Column("credential", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("results", sa.JSON(none_as_null=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('processing', 'completed', 'failed')", name="ck_jobs_status"),
        sa.CheckConstraint("results IS NULL OR error_message IS NULL", name="ck_jobs_results_xor_error"),
    )

    # GET /jobs?status=... filters on status and orders by created_at DESC.
    op.create_index("idx_jobs_status_created_at", "jobs", ["status", "created_at"], unique=False)
    # Purge sweeps delete by created_at alone.
    op.create_index("idx_jobs_created_at", "jobs", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_jobs_created_at", table_name="jobs")
    op.drop_index("idx_jobs_status_created_at", table_name="jobs")
    op.drop_table("jobs")
