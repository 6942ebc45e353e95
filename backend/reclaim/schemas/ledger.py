"""Pydantic schemas for removal ledger entries."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reclaim.models import RemovedDeployment
from reclaim.schemas.removal import DeploymentStats


class RemovalEntry(BaseModel):
    """Schema for a ledger entry to be recorded.

    Statistics are optional; unknown values are stored as NULL.
    """

    deployment: str = Field(..., min_length=1, description="Deployment id")
    schema_name: str = Field(..., min_length=1, description="Schema that held the entity data")
    subgraphs: list[str] = Field(
        default_factory=list, description="Names of subgraphs that used the deployment"
    )
    created_at: int | None = Field(None, description="Original creation time of the deployment")
    removed_at: datetime | None = Field(None, description="Removal time, store default if unset")

    row_count: int | None = Field(None, ge=0)
    entity_count: int | None = Field(None, ge=0)
    latest_ethereum_block_number: int | None = Field(None, ge=0)

    total_bytes: Decimal | None = Field(None, ge=0)
    index_bytes: Decimal | None = Field(None, ge=0)
    toast_bytes: Decimal | None = Field(None, ge=0)
    table_bytes: Decimal | None = Field(None, ge=0)

    @field_validator("subgraphs", mode="before")
    @classmethod
    def split_subgraphs(cls, value):
        """Accept a comma-separated string as well as a list."""
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [name.strip() for name in value if name and name.strip()]

    def with_stats(self, stats: DeploymentStats | None, row_count: int) -> "RemovalEntry":
        """Return a copy carrying the reclaimed row count and collected statistics."""
        update = {"row_count": row_count}
        if stats is not None:
            update.update(stats.model_dump(exclude_none=True))
        return self.model_copy(update=update)

    def to_model(self) -> RemovedDeployment:
        """Build the ORM row for this entry."""
        fields = self.model_dump(exclude={"subgraphs", "removed_at"})
        row = RemovedDeployment(subgraphs=",".join(self.subgraphs), **fields)
        if self.removed_at is not None:
            row.removed_at = self.removed_at
        return row


class RemovedDeploymentResponse(BaseModel):
    """Schema for a recorded ledger row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    deployment: str
    removed_at: datetime
    schema_name: str
    created_at: int | None
    subgraphs: str
    row_count: int | None
    entity_count: int | None
    latest_ethereum_block_number: int | None
    total_bytes: Decimal | None
    index_bytes: Decimal | None
    toast_bytes: Decimal | None
    table_bytes: Decimal | None
