"""CLI entrypoint for deployment maintenance.

Usage:
    python -m reclaim remove <deployment> --schema-name sgd42 --subgraph name/a
    python -m reclaim reclaim <deployment>      # purge metadata only
    python -m reclaim ledger [<deployment>]     # show removed deployments
    python -m reclaim vacuum                    # vacuum subgraph_deployment once
    python -m reclaim jobs                      # run periodic jobs until interrupted

Requires DATABASE_URL (or DATABASE_SECRET_ARN for AWS Secrets Manager).
"""

import argparse
import asyncio
import logging
import sys

from common.config import settings
from reclaim.jobs import JobRunner, VacuumDeploymentsJob, register_jobs
from reclaim.schemas.ledger import RemovedDeploymentResponse
from reclaim.services.database import close_db, get_engine, session_scope
from reclaim.services.errors import LedgerWriteError
from reclaim.services.ledger_service import LedgerService
from reclaim.services.reclaim_service import ReclaimService
from reclaim.services.removal_service import DeploymentRemover

logging.basicConfig(level=settings.resolved_log_level, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_LEDGER_PENDING = 2


def remove_deployment(args: argparse.Namespace) -> int:
    """Reclaim and record a deployment. Returns exit code."""
    try:
        outcome = DeploymentRemover().remove(
            deployment=args.deployment,
            schema_name=args.schema_name,
            subgraphs=args.subgraph,
            created_at=args.created_at,
        )
    except LedgerWriteError as e:
        logger.error(str(e))
        print(e.entry.model_dump_json())
        return EXIT_LEDGER_PENDING

    if outcome.already_recorded:
        print(f"{outcome.deployment}: already recorded, {outcome.rows_deleted} rows reclaimed")
    else:
        print(f"{outcome.deployment}: {outcome.rows_deleted} rows reclaimed and recorded")
    return EXIT_OK


def reclaim_only(args: argparse.Namespace) -> int:
    """Purge metadata without writing the ledger. Returns exit code."""
    with session_scope() as session:
        counts = ReclaimService(session).reclaim_by_table(args.deployment)

    for table, count in counts.items():
        if count:
            print(f"{table:<50} {count}")
    print(f"Total: {sum(counts.values())}")
    return EXIT_OK


def show_ledger(args: argparse.Namespace) -> int:
    """Show ledger rows. Returns exit code."""
    with session_scope() as session:
        service = LedgerService(session)
        if args.deployment:
            row = service.get(args.deployment)
            if row is None:
                print(f"{args.deployment} has not been removed")
                return EXIT_FAILED
            rows = [row]
        else:
            rows = service.list_recent(limit=args.limit)
        responses = [RemovedDeploymentResponse.model_validate(r) for r in rows]

    for r in responses:
        print(
            f"{r.removed_at:%Y-%m-%d %H:%M:%S}  {r.deployment}  {r.schema_name:<10} "
            f"rows={r.row_count}  entities={r.entity_count}  bytes={r.total_bytes}"
        )
    return EXIT_OK


def vacuum(args: argparse.Namespace) -> int:
    """Vacuum subgraph_deployment once. Returns exit code."""
    VacuumDeploymentsJob(get_engine(), settings.metadata_schema).vacuum()
    print("Vacuum complete")
    return EXIT_OK


def run_jobs(args: argparse.Namespace) -> int:
    """Run periodic jobs until interrupted. Returns exit code."""
    runner = JobRunner()
    register_jobs(runner, get_engine(), settings)
    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Job runner interrupted")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deployment metadata maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    remove = commands.add_parser("remove", help="Reclaim a deployment and record it")
    remove.add_argument("deployment")
    remove.add_argument("--schema-name", required=True, help="Schema of the deployment's data")
    remove.add_argument(
        "--subgraph",
        action="append",
        default=[],
        help="Subgraph name that used the deployment (repeatable)",
    )
    remove.add_argument("--created-at", type=int, default=None)
    remove.set_defaults(func=remove_deployment)

    reclaim = commands.add_parser("reclaim", help="Purge a deployment's metadata only")
    reclaim.add_argument("deployment")
    reclaim.set_defaults(func=reclaim_only)

    ledger = commands.add_parser("ledger", help="Show removed deployments")
    ledger.add_argument("deployment", nargs="?")
    ledger.add_argument("--limit", type=int, default=20)
    ledger.set_defaults(func=show_ledger)

    vacuum_cmd = commands.add_parser("vacuum", help="Vacuum subgraph_deployment once")
    vacuum_cmd.set_defaults(func=vacuum)

    jobs = commands.add_parser("jobs", help="Run periodic maintenance jobs")
    jobs.set_defaults(func=run_jobs)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return EXIT_FAILED
    finally:
        close_db()


if __name__ == "__main__":
    sys.exit(main())
