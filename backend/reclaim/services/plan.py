"""Deletion plan for a deployment's metadata.

A plan is an ordered list of steps. Each step pairs a table with the rule
that decides which of its rows belong to a deployment. The dynamic data
source ids are snapshotted before any step runs, because deleting the data
source rows would otherwise lose the association the prefix rule needs.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import ColumnElement, Delete, Select, Table, delete, func, or_, select

from reclaim.models.metadata import (
    DATA_SOURCE_ID_LENGTH,
    DEPLOYMENT_ID_LENGTH,
    PREFIX_OWNED_TABLES,
    dynamic_data_source,
)


class OwnershipRule:
    """Decides which rows of a table belong to a deployment."""

    def predicate(
        self,
        table: Table,
        deployment: str,
        data_source_ids: Sequence[str],
    ) -> ColumnElement[bool]:
        raise NotImplementedError


@dataclass(frozen=True)
class OwnedByDeployment(OwnershipRule):
    """Rows whose deployment column equals the deployment id exactly."""

    column: str = "deployment"

    def predicate(self, table, deployment, data_source_ids):
        return table.c[self.column] == deployment


@dataclass(frozen=True)
class OwnedByIdPrefix(OwnershipRule):
    """Rows whose id starts with the deployment id or one of its data source ids."""

    deployment_length: int = DEPLOYMENT_ID_LENGTH
    data_source_length: int = DATA_SOURCE_ID_LENGTH

    def predicate(self, table, deployment, data_source_ids):
        id_column = table.c.id
        clauses = [func.substr(id_column, 1, self.deployment_length) == deployment]
        if data_source_ids:
            clauses.append(
                func.substr(id_column, 1, self.data_source_length).in_(list(data_source_ids))
            )
        return or_(*clauses)


@dataclass(frozen=True)
class DeletionStep:
    table: Table
    rule: OwnershipRule

    @property
    def name(self) -> str:
        return self.table.name

    def statement(self, deployment: str, data_source_ids: Sequence[str]) -> Delete:
        """Build the DELETE for this step."""
        return delete(self.table).where(
            self.rule.predicate(self.table, deployment, data_source_ids)
        )


class DeletionPlan:
    """Ordered deletion steps plus the data source snapshot query."""

    def __init__(
        self,
        steps: Sequence[DeletionStep],
        data_source_table: Table = dynamic_data_source,
    ):
        names = [step.table.fullname for step in steps]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Tables appear more than once in deletion plan: {duplicates}")
        self.steps = list(steps)
        self.data_source_table = data_source_table

    @classmethod
    def default(cls) -> "DeletionPlan":
        """Plan covering every metadata table, data sources first."""
        steps = [DeletionStep(dynamic_data_source, OwnedByDeployment())]
        steps.extend(DeletionStep(table, OwnedByIdPrefix()) for table in PREFIX_OWNED_TABLES)
        return cls(steps)

    def snapshot_query(self, deployment: str) -> Select:
        """Select the ids of the deployment's dynamic data sources."""
        table = self.data_source_table
        return select(table.c.id).where(table.c.deployment == deployment)

    def extend(self, *steps: DeletionStep) -> "DeletionPlan":
        """Return a new plan with extra steps appended."""
        return DeletionPlan([*self.steps, *steps], self.data_source_table)

    @property
    def table_names(self) -> list[str]:
        return [step.name for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)
