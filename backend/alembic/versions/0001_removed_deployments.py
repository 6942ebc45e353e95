"""Removed deployments ledger

Revision ID: 0001_removed_deployments
Revises: None
Create Date: 2020-09-21

Append-only bookkeeping for deployments whose metadata was reclaimed:
- one row per deployment, unique on deployment
- size and progress statistics captured at removal time
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_removed_deployments"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the removed_deployments table."""
    op.create_table(
        "removed_deployments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deployment", sa.Text(), nullable=False),
        sa.Column(
            "removed_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column("schema_name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=True),
        sa.Column(
            "subgraphs",
            sa.Text(),
            nullable=False,
            comment="Comma-separated names of subgraphs that used the deployment",
        ),
        sa.Column("row_count", sa.Integer(), nullable=True),
        sa.Column("entity_count", sa.Integer(), nullable=True),
        sa.Column("latest_ethereum_block_number", sa.Integer(), nullable=True),
        sa.Column("total_bytes", sa.Numeric(), nullable=True),
        sa.Column("index_bytes", sa.Numeric(), nullable=True),
        sa.Column("toast_bytes", sa.Numeric(), nullable=True),
        sa.Column("table_bytes", sa.Numeric(), nullable=True),
        sa.UniqueConstraint("deployment", name="removed_deployments_deployment_key"),
    )


def downgrade() -> None:
    """Drop the removed_deployments table."""
    op.drop_table("removed_deployments")
