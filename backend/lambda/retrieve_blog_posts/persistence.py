"""persistence.py — PostgreSQL connection scope and blog post reads.

Part of the retrieve_blog_posts Lambda.
"""
from __future__ import annotations

import contextlib
import logging
from typing import Any, Iterator, List, Mapping

try:
    import psycopg2
    from psycopg2.extras import RealDictCursor

    _PSYCOPG2_AVAILABLE = True
except ImportError as _psycopg2_import_err:
    _PSYCOPG2_AVAILABLE = False
    logging.getLogger().error("psycopg2 import failed: %s", _psycopg2_import_err)

from config import NO_RESULTS_CONTENT, NO_RESULTS_TITLE, BlogPostsConfig, logger
from credentials import DbCredentials
from query_builder import BlogPostQuery
from serialization import BlogPost

__all__ = [
    "DatabaseConnectionError",
    "NO_RESULTS_POST",
    "_connect",
    "_fetch_posts",
    "_row_to_post",
]

NO_RESULTS_POST = BlogPost(title=NO_RESULTS_TITLE, content=NO_RESULTS_CONTENT)


class DatabaseConnectionError(RuntimeError):
    """The database driver is unavailable or the connection could not be opened."""


@contextlib.contextmanager
def _connect(config: BlogPostsConfig, creds: DbCredentials) -> Iterator[Any]:
    """Open a connection for the duration of the block and always close it."""
    if not _PSYCOPG2_AVAILABLE:
        raise DatabaseConnectionError("PostgreSQL driver not available in Lambda package")
    if not config.dsn:
        raise DatabaseConnectionError("DB_URL_KEY not set")

    logger.info("[INFO] Attempting to connect to the DB")
    try:
        conn = psycopg2.connect(config.dsn, user=creds.username, password=creds.password)
    except psycopg2.Error as exc:
        raise DatabaseConnectionError(
            f"Database connection failed: {exc.__class__.__name__}"
        ) from exc
    logger.debug("Connected to the DB")

    try:
        yield conn
    finally:
        try:
            conn.close()
        except Exception as exc:
            logger.error("[ERROR] Error closing connection: %s", exc)


def _row_to_post(row: Mapping[str, Any]) -> BlogPost:
    return BlogPost(title=row.get("title"), content=row.get("content"))


def _fetch_posts(conn: Any, query: BlogPostQuery) -> List[BlogPost]:
    """Execute ``query`` and project each row to a BlogPost, in result order."""
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(query.sql, query.params or None)
        if cur.description is None:
            # Statement produced no result set at all (distinct from zero rows).
            return [NO_RESULTS_POST]
        return [_row_to_post(row) for row in cur.fetchall()]
