"""config.py — Environment configuration, SQL constants, and logging.

Part of the retrieve_blog_posts Lambda.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

__all__ = [
    "BLOG_POST_TABLE",
    "BlogPostsConfig",
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "GENERIC_ERROR_MESSAGE",
    "LATEST_POSTS_LIMIT",
    "LIBPQ_URI_PARAMS",
    "NO_RESULTS_CONTENT",
    "NO_RESULTS_TITLE",
    "SEARCH_ERROR_MESSAGE",
    "logger",
]

# ---------------------------------------------------------------------------
# Storage constants
# ---------------------------------------------------------------------------

BLOG_POST_TABLE = "blog_page.blog_post"
LATEST_POSTS_LIMIT = 5
DEFAULT_PAGE = "1"
DEFAULT_LIMIT = "5"

# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

GENERIC_ERROR_MESSAGE = "An error occurred while processing the request."
SEARCH_ERROR_MESSAGE = "An error occurred while processing the search request."
NO_RESULTS_TITLE = "No Results Found"
NO_RESULTS_CONTENT = "Please rephrase your search term and try again."

_TRUTHY = {"1", "true", "yes", "on"}

# Connection keywords libpq accepts in a postgresql:// URI query string.
LIBPQ_URI_PARAMS = frozenset(
    {
        "application_name",
        "channel_binding",
        "client_encoding",
        "connect_timeout",
        "dbname",
        "fallback_application_name",
        "gssencmode",
        "host",
        "hostaddr",
        "keepalives",
        "keepalives_count",
        "keepalives_idle",
        "keepalives_interval",
        "options",
        "passfile",
        "password",
        "port",
        "sslcert",
        "sslcrl",
        "sslkey",
        "sslmode",
        "sslpassword",
        "sslrootcert",
        "target_session_attrs",
        "tcp_user_timeout",
        "user",
    }
)


@dataclass(frozen=True)
class BlogPostsConfig:
    db_url: str
    secret_name: str
    secrets_region: str = "us-east-2"
    search_term_wildcard_spaces: bool = False

    @classmethod
    def from_env(cls) -> "BlogPostsConfig":
        return cls(
            db_url=os.environ.get("DB_URL_KEY", ""),
            secret_name=os.environ.get("SECRET_NAME", ""),
            secrets_region=os.environ.get("SECRETS_REGION", "us-east-2"),
            search_term_wildcard_spaces=(
                os.environ.get("SEARCH_TERM_WILDCARD_SPACES", "false").strip().lower() in _TRUTHY
            ),
        )

    @property
    def dsn(self) -> str:
        """libpq connection string.

        JDBC-style locators lose their ``jdbc:`` prefix and any query options
        outside ``LIBPQ_URI_PARAMS`` (e.g. ``sslfactory``).
        """
        url = self.db_url.strip()
        if not url.startswith("jdbc:"):
            return url
        url = url[len("jdbc:"):]
        parts = urlsplit(url)
        if not parts.query:
            return url
        kept = []
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            if key in LIBPQ_URI_PARAMS:
                kept.append((key, value))
            else:
                logger.warning("[WARNING] Dropping JDBC-only connection option: %s", key)
        return urlunsplit(parts._replace(query=urlencode(kept)))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(logging.INFO)
