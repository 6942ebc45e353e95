"""Exceptions raised by the reclaim and ledger services.

SQLAlchemy errors are translated into these at the service boundary so
callers can tell a retryable store failure from an already-recorded
removal or a ledger write that must be retried on its own.
"""

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

# PostgreSQL SQLSTATEs that mean "try again": serialization failure,
# deadlock detected, lock not available
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
UNIQUE_VIOLATION_SQLSTATE = "23505"


class MaintenanceError(Exception):
    """Base exception for deployment maintenance errors."""

    pass


class ReclaimError(MaintenanceError):
    """Reclaiming a deployment's metadata failed and was rolled back."""

    def __init__(self, message: str, deployment: str, table: str | None = None):
        super().__init__(message)
        self.deployment = deployment
        self.table = table

    def __str__(self) -> str:
        context = f"deployment={self.deployment}"
        if self.table:
            context += f", table={self.table}"
        return f"{self.args[0]} ({context})"


class TransientStoreError(ReclaimError):
    """Connection loss, lock contention or a transaction conflict. Safe to retry."""

    pass


class ReclaimIntegrityError(ReclaimError):
    """Unexpected constraint violation while deleting metadata."""

    pass


class LedgerError(MaintenanceError):
    """Writing the removal ledger failed."""

    def __init__(self, message: str, deployment: str):
        super().__init__(message)
        self.deployment = deployment


class AlreadyRecordedError(LedgerError):
    """The deployment already has a ledger row."""

    pass


class LedgerWriteError(MaintenanceError):
    """Reclaim committed but the ledger row could not be written.

    ``entry`` holds the fully prepared ledger entry; retry only the ledger
    write with it, since a second reclaim would report zero rows.
    """

    def __init__(self, message: str, entry):
        super().__init__(message)
        self.entry = entry

    @property
    def deployment(self) -> str:
        return self.entry.deployment


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_transient(exc: SQLAlchemyError) -> bool:
    """Whether a store error is worth retrying."""
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        if _sqlstate(exc) in TRANSIENT_SQLSTATES:
            return True
    return isinstance(exc, OperationalError)


def is_unique_violation(exc: IntegrityError) -> bool:
    """Whether an integrity error is a unique constraint violation."""
    if _sqlstate(exc) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    # sqlite3 carries no SQLSTATE
    return "UNIQUE constraint failed" in str(exc.orig)


def translate_reclaim_error(exc: SQLAlchemyError, deployment: str, table: str) -> ReclaimError:
    """Map a SQLAlchemy error raised while reclaiming to a ReclaimError."""
    if isinstance(exc, IntegrityError):
        return ReclaimIntegrityError(f"Constraint violation: {exc.orig}", deployment, table)
    if is_transient(exc):
        return TransientStoreError(f"Transient store failure: {exc}", deployment, table)
    return ReclaimError(f"Reclaim failed: {exc}", deployment, table)
