"""Statistics collector - size and progress of a deployment before removal.

Must run before the reclaim: the ``subgraph_deployment`` row it reads is
one of the rows the reclaim deletes.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from reclaim.models import subgraph_deployment
from reclaim.schemas.removal import DeploymentStats

logger = logging.getLogger(__name__)

# Ordinary tables of one schema; toast is what is left of the total
# after heap and indexes
SCHEMA_SIZES_SQL = text(
    """
    select coalesce(sum(pg_total_relation_size(c.oid)), 0) as total_bytes,
           coalesce(sum(pg_indexes_size(c.oid)), 0) as index_bytes,
           coalesce(sum(pg_relation_size(c.oid)), 0) as table_bytes
      from pg_catalog.pg_class c
      join pg_catalog.pg_namespace n on n.oid = c.relnamespace
     where n.nspname = :schema_name
       and c.relkind = 'r'
    """
)


def _to_int(value) -> int | None:
    return None if value is None else int(value)


class StatsCollector:
    """Collects the statistics stored alongside a ledger entry."""

    def __init__(self, db: Session):
        """Initialize with database session.

        Args:
            db: SQLAlchemy session
        """
        self.db = db

    def collect(self, deployment: str, schema_name: str) -> DeploymentStats:
        """Collect statistics for a deployment.

        Args:
            deployment: The deployment id
            schema_name: Schema holding the deployment's entity tables

        Returns:
            DeploymentStats, with unknown values left as None
        """
        stats = DeploymentStats()

        query = select(
            subgraph_deployment.c.entity_count,
            subgraph_deployment.c.latest_ethereum_block_number,
        ).where(subgraph_deployment.c.id == deployment)
        row = self.db.execute(query).first()
        if row is None:
            logger.warning(f"No subgraph_deployment row for {deployment}")
        else:
            stats.entity_count = _to_int(row.entity_count)
            stats.latest_ethereum_block_number = _to_int(row.latest_ethereum_block_number)

        if self.db.get_bind().dialect.name == "postgresql":
            sizes = self.db.execute(SCHEMA_SIZES_SQL, {"schema_name": schema_name}).one()
            total = Decimal(sizes.total_bytes)
            index = Decimal(sizes.index_bytes)
            table = Decimal(sizes.table_bytes)
            stats.total_bytes = total
            stats.index_bytes = index
            stats.table_bytes = table
            stats.toast_bytes = max(total - index - table, Decimal(0))
        else:
            logger.debug("Schema sizes are only available on PostgreSQL")

        return stats
