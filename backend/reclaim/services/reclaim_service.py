"""Reclaim service - purge a removed deployment's metadata.

Deletes every metadata row that belongs to a deployment across the
indexing node's metadata tables, as one all-or-nothing unit of work.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.tracing import add_span_attributes, store_span
from reclaim.services.errors import translate_reclaim_error
from reclaim.services.plan import DeletionPlan

logger = logging.getLogger(__name__)


class ReclaimService:
    """Service for reclaiming deployment metadata."""

    def __init__(self, db: Session, plan: DeletionPlan | None = None):
        """Initialize with database session.

        Args:
            db: SQLAlchemy session. The caller owns the outer transaction.
            plan: Deletion plan, defaults to every metadata table
        """
        self.db = db
        self.plan = plan or DeletionPlan.default()

    def data_source_ids(self, deployment: str) -> list[str]:
        """Get the ids of the deployment's dynamic data sources.

        Args:
            deployment: The deployment id

        Returns:
            Data source ids, matched on exact deployment equality
        """
        result = self.db.execute(self.plan.snapshot_query(deployment))
        return list(result.scalars().all())

    def reclaim_by_table(self, deployment: str) -> dict[str, int]:
        """Delete all metadata rows of a deployment.

        Runs inside a savepoint: either every matching row is deleted or,
        on any failure, none are. An unknown deployment deletes nothing.

        Args:
            deployment: The deployment id

        Returns:
            Deleted row count per table, in plan order

        Raises:
            ReclaimError: If the store failed; nothing was deleted.
        """
        counts: dict[str, int] = {}
        table = self.plan.data_source_table.name

        with store_span("reclaim", deployment, tables=len(self.plan)) as span:
            try:
                with self.db.begin_nested():
                    data_source_ids = self.data_source_ids(deployment)
                    for step in self.plan.steps:
                        table = step.name
                        result = self.db.execute(step.statement(deployment, data_source_ids))
                        counts[step.name] = result.rowcount
            except SQLAlchemyError as exc:
                logger.error(f"Reclaim of {deployment} failed on {table}: {exc}")
                raise translate_reclaim_error(exc, deployment, table) from exc

            total = sum(counts.values())
            add_span_attributes(
                span,
                rows_deleted=total,
                data_sources=len(data_source_ids),
                table_counts=counts,
            )

        logger.debug(f"Reclaim counts for {deployment}: {counts}")
        logger.info(
            f"Reclaimed {total} metadata rows for deployment {deployment} "
            f"({len(data_source_ids)} dynamic data sources)"
        )
        return counts

    def reclaim(self, deployment: str) -> int:
        """Delete all metadata rows of a deployment.

        Args:
            deployment: The deployment id

        Returns:
            Total number of rows deleted across all metadata tables
        """
        return sum(self.reclaim_by_table(deployment).values())
