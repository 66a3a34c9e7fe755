"""retrieve_blog_posts/lambda_function.py

Lambda API returning blog posts from PostgreSQL as JSON.

Routes (via API Gateway proxy):
    GET     /posts     — latest five posts, or a filtered/paginated search
    OPTIONS /posts     — CORS preflight

Query-string parameters (all optional):
    searchTerm      substring match on content (ILIKE)
    searchTags      single tag containment match
    searchKeywords  single keyword containment match
    order           "a" for ascending id order, anything else descending
    page            1-based page number, default 1
    limit           page size, default 5

Without any query-string parameters the five most recent posts are returned.

Environment variables:
    DB_URL_KEY                   jdbc:postgresql://host:5432/db (or libpq URI/DSN)
    SECRET_NAME                  Secrets Manager id holding {"username", "password"}
    SECRETS_REGION               default: us-east-2
    SEARCH_TERM_WILDCARD_SPACES  default: false
"""

from __future__ import annotations

import json
import time
from typing import Any, BinaryIO, Dict, List, Optional

from config import (
    GENERIC_ERROR_MESSAGE,
    SEARCH_ERROR_MESSAGE,
    BlogPostsConfig,
    logger,
)
from credentials import CredentialsError, _fetch_db_credentials
from http_utils import (
    _error,
    _is_preflight,
    _parse_event,
    _preflight_response,
    _query_params,
    _response,
)
from persistence import DatabaseConnectionError, _connect, _fetch_posts
from query_builder import _build_search_query, _latest_posts_query
from serialization import BlogPost, PostsBody, _emit_structured_observability

_CONFIG = BlogPostsConfig.from_env()


def _request_id(context: Any) -> str:
    return str(getattr(context, "aws_request_id", "") or "")


def _search_posts(conn: Any, params: Dict[str, Any], config: BlogPostsConfig) -> List[BlogPost]:
    query = _build_search_query(params, wildcard_spaces=config.search_term_wildcard_spaces)
    logger.info("[INFO] search query bound_params=%d", len(query.params))
    return _fetch_posts(conn, query)


def handle_request(
    event: Dict[str, Any],
    config: BlogPostsConfig,
    request_id: str = "",
) -> Dict[str, Any]:
    """Run one request against the database and return the response envelope."""
    if _is_preflight(event):
        logger.info("[INFO] CORS preflight request")
        return _preflight_response()

    started = time.time()
    params = _query_params(event)
    query_mode = "latest" if params is None else "search"
    error_code = ""
    posts: List[BlogPost] = []

    try:
        creds = _fetch_db_credentials(config)
        with _connect(config, creds) as conn:
            if params is None:
                posts = _fetch_posts(conn, _latest_posts_query())
                resp = _response(200, PostsBody(posts))
            else:
                try:
                    posts = _search_posts(conn, params, config)
                    resp = _response(200, PostsBody(posts))
                except Exception as exc:
                    logger.error("[ERROR] Search request failed: %s: %s", exc.__class__.__name__, exc)
                    error_code = "SEARCH_FAILED"
                    posts = []
                    resp = _error(500, SEARCH_ERROR_MESSAGE)
    except CredentialsError as exc:
        logger.error("[ERROR] Credential lookup failed: %s", exc)
        error_code = "CREDENTIALS_FAILED"
        posts = []
        resp = _error(500, GENERIC_ERROR_MESSAGE)
    except DatabaseConnectionError as exc:
        logger.error("[ERROR] %s", exc)
        error_code = "CONNECTION_FAILED"
        posts = []
        resp = _error(500, GENERIC_ERROR_MESSAGE)
    except Exception:
        logger.exception("[ERROR] Unhandled error while retrieving blog posts")
        error_code = "INTERNAL_ERROR"
        posts = []
        resp = _error(500, GENERIC_ERROR_MESSAGE)

    _emit_structured_observability(
        component="retrieve_blog_posts",
        event="request_complete",
        request_id=request_id,
        query_mode=query_mode,
        status_code=resp["statusCode"],
        row_count=len(posts),
        latency_ms=int((time.time() - started) * 1000),
        error_code=error_code,
    )
    return resp


def lambda_handler(event: Any, context: Any) -> Dict[str, Any]:
    # Malformed events are not converted into a response.
    parsed = _parse_event(event)
    return handle_request(parsed, _CONFIG, _request_id(context))


def stream_handler(
    input_stream: BinaryIO,
    output_stream: BinaryIO,
    context: Any,
    config: Optional[BlogPostsConfig] = None,
) -> None:
    """Read a raw JSON event from ``input_stream`` and write the envelope to ``output_stream``."""
    event = _parse_event(input_stream.read())
    resp = handle_request(event, config or _CONFIG, _request_id(context))
    try:
        output_stream.write(json.dumps(resp, ensure_ascii=False).encode("utf-8"))
    except (OSError, TypeError, ValueError) as exc:
        logger.error("[ERROR] Error writing response: %s", exc)
