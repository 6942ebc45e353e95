"""Removal orchestrator - reclaim a deployment and record it in the ledger.

The reclaim commits in its own transaction; the ledger row is written in
the transaction that immediately follows. A ledger failure after a
committed reclaim raises LedgerWriteError with the prepared entry so only
the ledger write is retried.
"""

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from common.config import settings
from reclaim.schemas.ledger import RemovalEntry
from reclaim.schemas.removal import DeploymentStats, RemovalOutcome
from reclaim.services.database import get_session_factory, session_scope
from reclaim.services.errors import (
    AlreadyRecordedError,
    LedgerError,
    LedgerWriteError,
    translate_reclaim_error,
)
from reclaim.services.ledger_service import LedgerService
from reclaim.services.plan import DeletionPlan
from reclaim.services.reclaim_service import ReclaimService
from reclaim.services.stats_service import StatsCollector

logger = logging.getLogger(__name__)


class DeploymentRemover:
    """Runs a full deployment removal: statistics, reclaim, ledger."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        collect_stats: bool | None = None,
        plan: DeletionPlan | None = None,
    ):
        """Initialize the remover.

        Args:
            session_factory: Session factory, defaults to the configured database
            collect_stats: Gather statistics before reclaiming, defaults to
                COLLECT_REMOVAL_STATS
            plan: Deletion plan, defaults to every metadata table
        """
        self.session_factory = session_factory or get_session_factory()
        self.collect_stats = settings.collect_removal_stats if collect_stats is None else collect_stats
        self.plan = plan

    def remove(
        self,
        deployment: str,
        schema_name: str,
        subgraphs: Sequence[str] | str = (),
        created_at: int | None = None,
    ) -> RemovalOutcome:
        """Reclaim a deployment's metadata and record the removal.

        Args:
            deployment: The deployment id
            schema_name: Schema that held the deployment's entity data
            subgraphs: Names of subgraphs that used the deployment
            created_at: Original creation time of the deployment, if known

        Returns:
            RemovalOutcome with the reclaimed row count

        Raises:
            pydantic.ValidationError: If the ledger entry is invalid; nothing is deleted.
            ReclaimError: If the reclaim failed; nothing is deleted.
            LedgerWriteError: If the reclaim committed but the ledger write failed.
        """
        entry = RemovalEntry(
            deployment=deployment,
            schema_name=schema_name,
            subgraphs=subgraphs,
            created_at=created_at,
        )
        log_extra = {"deployment": deployment, "schema_name": schema_name}

        stats: DeploymentStats | None = None
        try:
            with session_scope(self.session_factory) as session:
                if self.collect_stats:
                    try:
                        stats = StatsCollector(session).collect(deployment, schema_name)
                    except SQLAlchemyError as exc:
                        raise translate_reclaim_error(
                            exc, deployment, "subgraph_deployment"
                        ) from exc
                rows_deleted = ReclaimService(session, self.plan).reclaim(deployment)
        except SQLAlchemyError as exc:
            # failed at COMMIT; the store rolled the whole reclaim back
            logger.error(f"Reclaim commit failed: {exc}", extra=log_extra)
            raise translate_reclaim_error(exc, deployment, "commit") from exc

        logger.info("Reclaim committed", extra={**log_extra, "rows_deleted": rows_deleted})
        return self.record_only(entry.with_stats(stats, rows_deleted), stats=stats)

    def record_only(
        self,
        entry: RemovalEntry,
        stats: DeploymentStats | None = None,
    ) -> RemovalOutcome:
        """Write the ledger row for an already reclaimed deployment.

        Args:
            entry: The prepared ledger entry, row_count included
            stats: Statistics to echo in the outcome

        Returns:
            RemovalOutcome; already_recorded is set if the ledger had the deployment

        Raises:
            LedgerWriteError: If the ledger row could not be written.
        """
        rows_deleted = entry.row_count or 0
        log_extra = {"deployment": entry.deployment, "rows_deleted": rows_deleted}

        try:
            with session_scope(self.session_factory) as session:
                LedgerService(session).record_removal(entry)
        except AlreadyRecordedError:
            logger.warning("Deployment already recorded as removed", extra=log_extra)
            return RemovalOutcome(
                deployment=entry.deployment,
                rows_deleted=rows_deleted,
                already_recorded=True,
                stats=stats,
            )
        except (LedgerError, SQLAlchemyError) as exc:
            logger.error(f"Ledger write failed: {exc}", extra=log_extra)
            raise LedgerWriteError(
                f"Reclaimed {entry.deployment} but could not record it in the ledger: {exc}",
                entry,
            ) from exc

        logger.info("Removal recorded", extra=log_extra)
        return RemovalOutcome(deployment=entry.deployment, rows_deleted=rows_deleted, stats=stats)
