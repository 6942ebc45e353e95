"""Vacuum job for the deployment metadata table.

With a large number of subgraphs the autovacuum daemon might not run often
enough to keep ``subgraph_deployment``, which is very write-heavy, from
getting bloated. This job vacuums it on a short fixed interval.
"""

import logging

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from common.config import Settings
from reclaim.jobs.runner import Job, JobRunner
from reclaim.models.metadata import METADATA_SCHEMA

logger = logging.getLogger(__name__)


class VacuumDeploymentsJob(Job):
    """Runs ``vacuum (analyze)`` on the deployment metadata table."""

    def __init__(self, engine: Engine, schema: str = METADATA_SCHEMA):
        self.engine = engine
        self.schema = schema

    @property
    def name(self) -> str:
        return f"Vacuum {self.schema}.subgraph_deployment"

    def vacuum(self) -> None:
        """Vacuum the table. VACUUM cannot run inside a transaction block."""
        preparer = self.engine.dialect.identifier_preparer
        table = f"{preparer.quote_schema(self.schema)}.{preparer.quote('subgraph_deployment')}"
        with self.engine.connect() as conn:
            conn = conn.execution_options(isolation_level="AUTOCOMMIT")
            conn.execute(text(f"vacuum (analyze) {table}"))

    def run(self) -> None:
        try:
            self.vacuum()
        except SQLAlchemyError as e:
            logger.error(f"Vacuum of {self.schema}.subgraph_deployment failed: {e}")


def register_jobs(runner: JobRunner, engine: Engine, settings: Settings) -> None:
    """Register the default maintenance jobs."""
    runner.register(
        VacuumDeploymentsJob(engine, settings.metadata_schema),
        settings.vacuum_interval_seconds,
    )
