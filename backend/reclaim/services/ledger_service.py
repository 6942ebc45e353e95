"""Ledger service - append-only record of removed deployments.

Only inserts and reads. Ledger rows are never updated or deleted.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from common.tracing import store_span
from reclaim.models import RemovedDeployment
from reclaim.schemas.ledger import RemovalEntry
from reclaim.services.errors import AlreadyRecordedError, LedgerError, is_unique_violation

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for the removed deployments ledger."""

    def __init__(self, db: Session):
        """Initialize with database session.

        Args:
            db: SQLAlchemy session. The caller owns the outer transaction.
        """
        self.db = db

    def record_removal(self, entry: RemovalEntry) -> RemovedDeployment:
        """Record that a deployment was removed.

        The insert runs in a savepoint, so a rejected entry leaves the
        caller's transaction usable.

        Args:
            entry: The ledger entry

        Returns:
            The persisted RemovedDeployment

        Raises:
            AlreadyRecordedError: If the deployment already has a ledger row.
            LedgerError: If the insert failed for any other reason.
        """
        row = entry.to_model()
        with store_span("record_removal", entry.deployment, row_count=entry.row_count):
            try:
                with self.db.begin_nested():
                    self.db.add(row)
                    self.db.flush()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    logger.warning(f"Deployment {entry.deployment} is already in the ledger")
                    raise AlreadyRecordedError(
                        f"Deployment {entry.deployment} was already recorded as removed",
                        entry.deployment,
                    ) from exc
                raise LedgerError(
                    f"Invalid ledger entry for {entry.deployment}: {exc.orig}",
                    entry.deployment,
                ) from exc
            except SQLAlchemyError as exc:
                raise LedgerError(
                    f"Failed to record removal of {entry.deployment}: {exc}",
                    entry.deployment,
                ) from exc

        self.db.refresh(row)
        logger.info(f"Recorded removal of deployment {entry.deployment} (id={row.id})")
        return row

    def get(self, deployment: str) -> RemovedDeployment | None:
        """Get the ledger row for a deployment.

        Args:
            deployment: The deployment id

        Returns:
            The RemovedDeployment if recorded, None otherwise
        """
        query = select(RemovedDeployment).where(RemovedDeployment.deployment == deployment)
        result = self.db.execute(query)
        return result.scalar_one_or_none()

    def is_recorded(self, deployment: str) -> bool:
        """Check whether a deployment has a ledger row."""
        return self.get(deployment) is not None

    def list_recent(self, limit: int = 50, offset: int = 0) -> list[RemovedDeployment]:
        """List ledger rows, most recently removed first.

        Args:
            limit: Maximum number to return (default: 50)
            offset: Number to skip (default: 0)

        Returns:
            List of RemovedDeployment rows
        """
        query = (
            select(RemovedDeployment)
            .order_by(RemovedDeployment.removed_at.desc(), RemovedDeployment.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = self.db.execute(query)
        return list(result.scalars().all())
