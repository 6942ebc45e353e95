"""
AWS X-Ray tracing for store operations.

Each reclaim or ledger write runs in a ``store.<operation>`` subsegment.
Scalar facts (deployment, table count, rows deleted) are recorded as
annotations so traces can be filtered on them; anything else goes to
metadata. No-op when running outside Lambda (no active X-Ray segment).
"""

import os
from contextlib import contextmanager
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

# Auto-patch supported libraries (boto3, psycopg2, etc.)
if os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
    patch_all()

# Value types X-Ray accepts as annotations
ANNOTATION_TYPES = (str, int, float, bool)


def _record(subsegment, attributes: dict[str, Any]) -> None:
    for key, value in attributes.items():
        if value is None:
            continue
        if isinstance(value, ANNOTATION_TYPES):
            subsegment.put_annotation(key, value)
        else:
            subsegment.put_metadata(key, value, "store")


@contextmanager
def store_span(operation: str, deployment: str, **attributes: Any):
    """Create an X-Ray subsegment for a store operation.

    Yields None when no segment is active (tests, local runs, the CLI).
    """
    with xray_recorder.in_subsegment(f"store.{operation}") as subsegment:
        if subsegment is None:
            yield None
        else:
            _record(subsegment, {"deployment": deployment, **attributes})
            yield subsegment


def add_span_attributes(subsegment, **attributes: Any) -> None:
    """Record results on a subsegment. No-op if subsegment is None."""
    if subsegment is None:
        return
    _record(subsegment, attributes)
