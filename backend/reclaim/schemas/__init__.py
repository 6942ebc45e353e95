"""Reclaim schemas package."""

from reclaim.schemas.ledger import RemovalEntry, RemovedDeploymentResponse
from reclaim.schemas.removal import DeploymentStats, RemovalOutcome

__all__ = [
    "DeploymentStats",
    "RemovalEntry",
    "RemovalOutcome",
    "RemovedDeploymentResponse",
]
