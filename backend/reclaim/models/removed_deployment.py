"""RemovedDeployment model - append-only ledger of purged deployments.

One row is written when a deployment's metadata is reclaimed. Rows are never
updated or deleted by this code base.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from reclaim.models.base import Base


class RemovedDeployment(Base):
    """Bookkeeping row for a removed deployment.

    Attributes:
        id: Serial primary key
        deployment: Deployment id, unique across the ledger
        removed_at: When the removal was recorded (store default: now)
        schema_name: Database schema that held the deployment's entity data
        created_at: Original creation time of the deployment, if known
        subgraphs: Comma-separated names of subgraphs that used the deployment
        row_count: Metadata rows reclaimed
        entity_count: Entity count at removal time
        latest_ethereum_block_number: Latest processed block at removal time
        total_bytes: Total on-disk size of the deployment schema
        index_bytes: Index share of total_bytes
        toast_bytes: TOAST share of total_bytes
        table_bytes: Heap share of total_bytes
    """

    __tablename__ = "removed_deployments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deployment: Mapped[str] = mapped_column(Text, nullable=False)
    removed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.current_timestamp(),
    )

    schema_name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subgraphs: Mapped[str] = mapped_column(Text, nullable=False)

    row_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    entity_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    latest_ethereum_block_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    total_bytes: Mapped[Decimal | None] = mapped_column(Numeric, nullable=True)
    index_bytes: Mapped[Decimal | None] = mapped_column(Numeric, nullable=True)
    toast_bytes: Mapped[Decimal | None] = mapped_column(Numeric, nullable=True)
    table_bytes: Mapped[Decimal | None] = mapped_column(Numeric, nullable=True)

    __table_args__ = (
        UniqueConstraint("deployment", name="removed_deployments_deployment_key"),
    )

    @property
    def subgraph_names(self) -> list[str]:
        """Subgraph names as a list."""
        return [name for name in self.subgraphs.split(",") if name]

    def __repr__(self) -> str:
        return f"<RemovedDeployment(deployment={self.deployment}, row_count={self.row_count})>"
