"""Reclaim services package."""

from reclaim.services.database import close_db, get_session_factory, session_scope
from reclaim.services.ledger_service import LedgerService
from reclaim.services.plan import DeletionPlan, DeletionStep, OwnedByDeployment, OwnedByIdPrefix
from reclaim.services.reclaim_service import ReclaimService
from reclaim.services.removal_service import DeploymentRemover
from reclaim.services.stats_service import StatsCollector

__all__ = [
    "DeletionPlan",
    "DeletionStep",
    "DeploymentRemover",
    "LedgerService",
    "OwnedByDeployment",
    "OwnedByIdPrefix",
    "ReclaimService",
    "StatsCollector",
    "close_db",
    "get_session_factory",
    "session_scope",
]
