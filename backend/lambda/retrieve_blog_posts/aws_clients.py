"""aws_clients.py — Lazy-singleton Secrets Manager client.

The client is created on first use and reused for the lifetime of the
execution environment. Retries are disabled; a failed secret fetch fails
the request.
"""
from __future__ import annotations

from typing import Optional

import boto3
from botocore.config import Config

__all__ = [
    "_get_secretsmanager",
    "_secretsmanager",
]

# ---------------------------------------------------------------------------
# Client singletons
# ---------------------------------------------------------------------------

_secretsmanager = None


def _get_secretsmanager(region: Optional[str] = None):
    """Get (or create) the Secrets Manager client singleton."""
    global _secretsmanager
    if _secretsmanager is None:
        _secretsmanager = boto3.client(
            "secretsmanager",
            region_name=region,
            config=Config(retries={"max_attempts": 1, "mode": "standard"}),
        )
    return _secretsmanager
