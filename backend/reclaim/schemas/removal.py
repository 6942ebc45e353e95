"""Pydantic schemas for deployment statistics and removal results."""

from decimal import Decimal

from pydantic import BaseModel, Field


class DeploymentStats(BaseModel):
    """Size and progress statistics gathered before a deployment is purged."""

    entity_count: int | None = None
    latest_ethereum_block_number: int | None = None
    total_bytes: Decimal | None = None
    index_bytes: Decimal | None = None
    toast_bytes: Decimal | None = None
    table_bytes: Decimal | None = None


class RemovalOutcome(BaseModel):
    """Result of removing a deployment."""

    deployment: str
    rows_deleted: int = Field(..., ge=0, description="Metadata rows reclaimed")
    already_recorded: bool = Field(
        False, description="The ledger already had a row for this deployment"
    )
    stats: DeploymentStats | None = None
