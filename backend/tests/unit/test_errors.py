"""Unit tests for store error classification."""

import sqlite3

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, ProgrammingError

from reclaim.schemas import RemovalEntry
from reclaim.services.errors import (
    LedgerWriteError,
    ReclaimError,
    ReclaimIntegrityError,
    TransientStoreError,
    is_transient,
    is_unique_violation,
    translate_reclaim_error,
)


def _with_pgcode(code: str) -> Exception:
    orig = Exception("pg error")
    orig.pgcode = code
    return orig


class TestIsTransient:
    """Tests for is_transient()."""

    @pytest.mark.parametrize("code", ["40001", "40P01", "55P03"])
    def test_retryable_sqlstates(self, code):
        assert is_transient(DBAPIError("DELETE", {}, _with_pgcode(code)))

    def test_operational_error(self):
        assert is_transient(OperationalError("DELETE", {}, Exception("connection refused")))

    def test_invalidated_connection(self):
        exc = DBAPIError("DELETE", {}, Exception("gone"), connection_invalidated=True)
        assert is_transient(exc)

    def test_programming_error_is_not_transient(self):
        exc = ProgrammingError("DELETE", {}, _with_pgcode("42P01"))
        assert not is_transient(exc)


class TestIsUniqueViolation:
    """Tests for is_unique_violation()."""

    def test_postgres_sqlstate(self):
        assert is_unique_violation(IntegrityError("INSERT", {}, _with_pgcode("23505")))

    def test_sqlite_message(self):
        orig = sqlite3.IntegrityError(
            "UNIQUE constraint failed: removed_deployments.deployment"
        )
        assert is_unique_violation(IntegrityError("INSERT", {}, orig))

    def test_not_null_is_not_unique(self):
        assert not is_unique_violation(IntegrityError("INSERT", {}, _with_pgcode("23502")))


class TestTranslateReclaimError:
    """Tests for translate_reclaim_error()."""

    def test_integrity(self, deployment):
        exc = IntegrityError("DELETE", {}, Exception("fk"))
        error = translate_reclaim_error(exc, deployment, "subgraph_manifest")
        assert type(error) is ReclaimIntegrityError
        assert error.table == "subgraph_manifest"

    def test_transient(self, deployment):
        exc = OperationalError("DELETE", {}, Exception("timeout"))
        error = translate_reclaim_error(exc, deployment, "subgraph_error")
        assert type(error) is TransientStoreError

    def test_other(self, deployment):
        exc = ProgrammingError("DELETE", {}, Exception("relation does not exist"))
        error = translate_reclaim_error(exc, deployment, "subgraph_error")
        assert type(error) is ReclaimError
        assert str(error).endswith(f"(deployment={deployment}, table=subgraph_error)")


def test_reclaim_error_without_table(deployment):
    """Test the message when no table is known."""
    assert str(ReclaimError("failed", deployment)) == f"failed (deployment={deployment})"


def test_ledger_write_error_exposes_deployment(deployment):
    """Test that the pending entry's deployment is available on the error."""
    entry = RemovalEntry(deployment=deployment, schema_name="sgd1")
    assert LedgerWriteError("failed", entry).deployment == deployment
