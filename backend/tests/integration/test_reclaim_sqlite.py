"""Reclaim and ledger behaviour against a real SQL store."""

from sqlalchemy import Column, MetaData, Table, Text, func, select

import pytest

from reclaim.models import PREFIX_OWNED_TABLES, RemovedDeployment, metadata_registry
from reclaim.models import metadata as md
from reclaim.schemas.ledger import RemovalEntry
from reclaim.services.errors import AlreadyRecordedError, ReclaimError
from reclaim.services.ledger_service import LedgerService
from reclaim.services.plan import DeletionPlan, DeletionStep, OwnedByIdPrefix, OwnershipRule
from reclaim.services.reclaim_service import ReclaimService

DEPLOYMENT_A = "Qm" + "A" * 44
DEPLOYMENT_B = "Qm" + "B" * 44
DATA_SOURCE_A1 = "1" * 40
DATA_SOURCE_A2 = "2" * 40
DATA_SOURCE_B1 = "3" * 40


@pytest.fixture
def two_deployments(seed):
    """Metadata for deployments A and B, including rows owned via data sources."""
    seed(md.dynamic_data_source, DATA_SOURCE_A1, DATA_SOURCE_A2, deployment=DEPLOYMENT_A)
    seed(md.dynamic_data_source, DATA_SOURCE_B1, deployment=DEPLOYMENT_B)

    for deployment, data_source in ((DEPLOYMENT_A, DATA_SOURCE_A1), (DEPLOYMENT_B, DATA_SOURCE_B1)):
        seed(md.subgraph_deployment, deployment, entity_count=10)
        seed(md.subgraph_manifest, deployment)
        seed(md.block_handler, f"{deployment}-block-0", f"{deployment}-block-1")
        seed(md.event_handler, f"{deployment}-event-0")
        seed(md.contract_abi, f"{data_source}-abi-0")
        seed(md.contract_data_source, f"{data_source}-source")
        seed(md.subgraph_error, f"{deployment}{'e' * 20}")

    seed(md.data_source_template_source, f"{DATA_SOURCE_A2}-template")


def _total_rows(count_rows) -> int:
    return sum(count_rows(table) for table in metadata_registry.tables.values())


def _rows_owned_by_a(count_rows) -> int:
    owned = count_rows(
        md.dynamic_data_source, md.dynamic_data_source.c.deployment == DEPLOYMENT_A
    )
    for table in PREFIX_OWNED_TABLES:
        owned += count_rows(
            table,
            (func.substr(table.c.id, 1, 46) == DEPLOYMENT_A)
            | func.substr(table.c.id, 1, 40).in_([DATA_SOURCE_A1, DATA_SOURCE_A2]),
        )
    return owned


class TestWorkedExample:
    """Three handlers, one ABI and two dynamic data sources."""

    @pytest.fixture
    def example(self, seed):
        seed(md.dynamic_data_source, DATA_SOURCE_A1, DATA_SOURCE_A2, deployment=DEPLOYMENT_A)
        seed(md.block_handler, f"{DEPLOYMENT_A}-block")
        seed(md.call_handler, f"{DEPLOYMENT_A}-call")
        seed(md.event_handler, f"{DEPLOYMENT_A}-event")
        seed(md.contract_abi, f"{DEPLOYMENT_A}-abi")

    def test_reclaim_returns_six(self, example, session_factory):
        """Test that all six rows are counted."""
        with session_factory() as session, session.begin():
            assert ReclaimService(session).reclaim(DEPLOYMENT_A) == 6

    def test_ledger_records_row_count(self, example, session_factory):
        """Test that the ledger row carries the reclaimed count."""
        with session_factory() as session, session.begin():
            rows = ReclaimService(session).reclaim(DEPLOYMENT_A)

        entry = RemovalEntry(
            deployment=DEPLOYMENT_A, schema_name="sgd1", subgraphs=["name/a"], row_count=rows
        )
        with session_factory() as session, session.begin():
            LedgerService(session).record_removal(entry)

        with session_factory() as session:
            recorded = LedgerService(session).get(DEPLOYMENT_A)
            assert recorded.row_count == 6
            assert recorded.removed_at is not None


class TestReclaimProperties:
    """Idempotence, completeness, isolation and atomicity."""

    def test_idempotent(self, two_deployments, session_factory):
        """Test that a second reclaim finds nothing left."""
        with session_factory() as session, session.begin():
            first = ReclaimService(session).reclaim(DEPLOYMENT_A)
        with session_factory() as session, session.begin():
            second = ReclaimService(session).reclaim(DEPLOYMENT_A)

        assert first > 0
        assert second == 0

    def test_complete(self, two_deployments, session_factory, count_rows):
        """Test that no row owned by the deployment survives."""
        expected = _rows_owned_by_a(count_rows)

        with session_factory() as session, session.begin():
            deleted = ReclaimService(session).reclaim(DEPLOYMENT_A)

        assert deleted == expected
        assert _rows_owned_by_a(count_rows) == 0

    def test_rows_owned_via_data_source_prefix(self, two_deployments, session_factory, count_rows):
        """Test that rows keyed by a data source id are deleted with the deployment."""
        with session_factory() as session, session.begin():
            counts = ReclaimService(session).reclaim_by_table(DEPLOYMENT_A)

        assert counts["ethereum_contract_abi"] == 1
        assert counts["ethereum_contract_data_source_template_source"] == 1
        assert count_rows(md.contract_abi, md.contract_abi.c.id == f"{DATA_SOURCE_A1}-abi-0") == 0

    def test_isolated(self, two_deployments, session_factory, count_rows):
        """Test that another deployment's rows are untouched."""
        total_before = _total_rows(count_rows)

        with session_factory() as session, session.begin():
            deleted = ReclaimService(session).reclaim(DEPLOYMENT_A)

        assert _total_rows(count_rows) == total_before - deleted
        assert count_rows(md.dynamic_data_source) == 1
        assert count_rows(md.contract_abi, md.contract_abi.c.id == f"{DATA_SOURCE_B1}-abi-0") == 1
        assert count_rows(md.subgraph_deployment, md.subgraph_deployment.c.id == DEPLOYMENT_B) == 1
        assert count_rows(md.block_handler) == 2

    def test_unknown_deployment_is_noop(self, two_deployments, session_factory, count_rows):
        """Test that a deployment with no rows deletes nothing."""
        total_before = _total_rows(count_rows)

        with session_factory() as session, session.begin():
            assert ReclaimService(session).reclaim("Qm" + "Z" * 44) == 0

        assert _total_rows(count_rows) == total_before

    def test_store_failure_rolls_back(self, two_deployments, session_factory):
        """Test that a failing table mid-plan leaves every row in place."""
        missing = Table(
            "no_such_table",
            MetaData(schema="subgraphs"),
            Column("id", Text, primary_key=True),
        )
        steps = DeletionPlan.default().steps
        plan = DeletionPlan([*steps[:6], DeletionStep(missing, OwnedByIdPrefix()), *steps[6:]])

        with session_factory() as session:
            before = session.execute(select(func.count()).select_from(md.block_handler)).scalar()

            with pytest.raises(ReclaimError) as exc_info:
                ReclaimService(session, plan).reclaim(DEPLOYMENT_A)

            after = session.execute(select(func.count()).select_from(md.block_handler)).scalar()
            data_sources = session.execute(
                select(func.count()).select_from(md.dynamic_data_source)
            ).scalar()
            session.commit()

        assert exc_info.value.table == "no_such_table"
        assert exc_info.value.deployment == DEPLOYMENT_A
        assert after == before == 4
        assert data_sources == 3

    def test_injected_failure_rolls_back(self, two_deployments, session_factory, count_rows):
        """Test that a non-store exception mid-plan also rolls everything back."""

        class Exploding(OwnershipRule):
            def predicate(self, table, deployment, data_source_ids):
                raise RuntimeError("injected")

        steps = DeletionPlan.default().steps
        plan = DeletionPlan([*steps[:4], DeletionStep(md.subgraph_manifest, Exploding())])
        total_before = _total_rows(count_rows)

        with session_factory() as session:
            with pytest.raises(RuntimeError, match="injected"):
                ReclaimService(session, plan).reclaim(DEPLOYMENT_A)
            session.commit()

        assert _total_rows(count_rows) == total_before


class TestLedgerUniqueness:
    """Tests for duplicate ledger entries."""

    def test_second_record_rejected(self, session_factory, count_rows):
        """Test that recording the same deployment twice fails and keeps one row."""
        entry = RemovalEntry(deployment=DEPLOYMENT_A, schema_name="sgd1", subgraphs="a,b")

        with session_factory() as session, session.begin():
            LedgerService(session).record_removal(entry)

        with session_factory() as session, session.begin():
            with pytest.raises(AlreadyRecordedError):
                LedgerService(session).record_removal(entry)

        assert count_rows(RemovedDeployment.__table__) == 1

    def test_rejected_entry_keeps_transaction_usable(self, session_factory, count_rows):
        """Test that a duplicate does not poison the caller's transaction."""
        first = RemovalEntry(deployment=DEPLOYMENT_A, schema_name="sgd1")
        second = RemovalEntry(deployment=DEPLOYMENT_B, schema_name="sgd2")

        with session_factory() as session, session.begin():
            service = LedgerService(session)
            service.record_removal(first)
            with pytest.raises(AlreadyRecordedError):
                service.record_removal(first)
            service.record_removal(second)

        assert count_rows(RemovedDeployment.__table__) == 2

    def test_list_recent(self, session_factory):
        """Test listing returns every recorded deployment."""
        with session_factory() as session, session.begin():
            service = LedgerService(session)
            service.record_removal(RemovalEntry(deployment=DEPLOYMENT_A, schema_name="sgd1"))
            service.record_removal(RemovalEntry(deployment=DEPLOYMENT_B, schema_name="sgd2"))

        with session_factory() as session:
            rows = LedgerService(session).list_recent()

        assert {row.deployment for row in rows} == {DEPLOYMENT_A, DEPLOYMENT_B}
        assert rows[0].deployment == DEPLOYMENT_B
