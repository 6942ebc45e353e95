"""Removal Lambda handler.

Reclaims a deployment's metadata and records it in the removal ledger.
Invoked by the indexing node's lifecycle tooling once a deployment is
no longer used by any subgraph.

Event:
    {"deployment": "Qm...", "schema_name": "sgd42",
     "subgraphs": ["name/a", "name/b"], "created_at": 1600000000}

A failed ledger write after a committed reclaim can be retried with
{"ledger_entry": {...}} taken from the error response.
"""

import json
import logging

from pydantic import ValidationError

from reclaim.schemas.ledger import RemovalEntry
from reclaim.services.errors import LedgerWriteError, ReclaimError, TransientStoreError
from reclaim.services.removal_service import DeploymentRemover

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _response(status_code: int, body: dict) -> dict:
    return {"statusCode": status_code, "body": json.dumps(body, default=str)}


def handler(event: dict, context) -> dict:
    """Remove a deployment.

    Args:
        event: Lambda event (see module docstring)
        context: Lambda context

    Returns:
        Removal result with status and row count
    """
    try:
        remover = DeploymentRemover()
        if "ledger_entry" in event:
            entry = RemovalEntry.model_validate(event["ledger_entry"])
            logger.info(f"Retrying ledger write for {entry.deployment}")
            outcome = remover.record_only(entry)
        else:
            deployment = event.get("deployment")
            logger.info(f"Removing deployment {deployment}")
            outcome = remover.remove(
                deployment=deployment,
                schema_name=event.get("schema_name"),
                subgraphs=event.get("subgraphs") or [],
                created_at=event.get("created_at"),
            )

        return _response(200, {"status": "success", **outcome.model_dump(mode="json")})

    except ValidationError as e:
        logger.error(f"Invalid removal event: {e}")
        return _response(
            400,
            {"status": "error", "message": "Invalid removal event", "errors": e.errors()},
        )
    except TransientStoreError as e:
        logger.warning(f"Transient failure, retry the removal: {e}")
        return _response(
            503,
            {"status": "error", "retryable": True, "message": str(e)},
        )
    except ReclaimError as e:
        logger.error(f"Reclaim failed: {e}")
        return _response(
            500,
            {"status": "error", "retryable": False, "message": str(e), "table": e.table},
        )
    except LedgerWriteError as e:
        logger.error(f"Ledger write failed after reclaim: {e}")
        return _response(
            500,
            {
                "status": "error",
                "retryable": True,
                "message": str(e),
                "ledger_entry": e.entry.model_dump(mode="json"),
            },
        )
    except Exception as e:
        logger.exception("Unexpected error during removal")
        return _response(500, {"status": "error", "message": str(e)})
