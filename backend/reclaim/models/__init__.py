"""SQLAlchemy models for the deployment reclaimer.

This module exports the owned ledger model, the declarative base and the
registry of external metadata tables.
"""

from reclaim.models.base import Base
from reclaim.models.metadata import (
    DATA_SOURCE_ID_LENGTH,
    DEPLOYMENT_ID_LENGTH,
    METADATA_SCHEMA,
    PREFIX_OWNED_TABLES,
    dynamic_data_source,
    metadata_registry,
    subgraph_deployment,
)
from reclaim.models.removed_deployment import RemovedDeployment

__all__ = [
    "Base",
    "DATA_SOURCE_ID_LENGTH",
    "DEPLOYMENT_ID_LENGTH",
    "METADATA_SCHEMA",
    "PREFIX_OWNED_TABLES",
    "RemovedDeployment",
    "dynamic_data_source",
    "metadata_registry",
    "subgraph_deployment",
]
