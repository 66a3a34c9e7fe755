"""query_builder.py — SQL construction for blog post retrieval.

Clause fragments and bound parameters are appended together, so the order of
``%s`` placeholders in the text always matches the order of ``params``. Sort
direction cannot be bound as a parameter; it is interpolated from a fixed
allow-list instead.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from config import BLOG_POST_TABLE, DEFAULT_LIMIT, DEFAULT_PAGE, LATEST_POSTS_LIMIT

__all__ = [
    "BlogPostQuery",
    "LATEST_POSTS_SQL",
    "SORT_DIRECTIONS",
    "_build_search_query",
    "_latest_posts_query",
    "_offset_for",
    "_parse_non_negative_int",
    "_sort_direction",
]

LATEST_POSTS_SQL = f"SELECT * FROM {BLOG_POST_TABLE} ORDER BY id DESC LIMIT {LATEST_POSTS_LIMIT}"
SORT_DIRECTIONS = ("ASC", "DESC")
_INTEGER_RE = re.compile(r"[+-]?\d+")


class BlogPostQuery:
    """Accumulates SQL clauses and their positional parameters in lockstep."""

    def __init__(self, base: str) -> None:
        self._clauses: List[str] = [base]
        self._params: List[Any] = []

    def add(self, clause: str, *params: Any) -> "BlogPostQuery":
        placeholders = clause.count("%s")
        if placeholders != len(params):
            raise ValueError(
                f"Clause has {placeholders} placeholder(s) but {len(params)} parameter(s)"
            )
        self._clauses.append(clause)
        self._params.extend(params)
        return self

    def order_by(self, column: str, direction: str) -> "BlogPostQuery":
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unsupported sort direction: {direction!r}")
        self._clauses.append(f"ORDER BY {column} {direction}")
        return self

    @property
    def sql(self) -> str:
        return " ".join(self._clauses)

    @property
    def params(self) -> Tuple[Any, ...]:
        return tuple(self._params)

    def __repr__(self) -> str:
        return f"BlogPostQuery(sql={self.sql!r}, params={len(self._params)})"


def _latest_posts_query() -> BlogPostQuery:
    return BlogPostQuery(LATEST_POSTS_SQL)


def _sort_direction(order: Optional[str]) -> str:
    return "ASC" if order == "a" else "DESC"


def _parse_non_negative_int(name: str, raw: Any) -> int:
    # Sign and digits only: no underscores, no surrounding whitespace.
    if not isinstance(raw, str) or not _INTEGER_RE.fullmatch(raw):
        raise ValueError(f"'{name}' must be an integer")
    value = int(raw)
    if value < 0:
        raise ValueError(f"'{name}' must not be negative")
    return value


def _offset_for(page: int, limit: int) -> int:
    if page < 1:
        raise ValueError("'page' must be at least 1")
    return (page - 1) * limit


def _build_search_query(
    params: Dict[str, Any],
    *,
    wildcard_spaces: bool = False,
) -> BlogPostQuery:
    """Build the filtered, sorted and paginated query for a search request.

    Bind order: searchTerm, searchTags, searchKeywords, limit, offset.
    Raises ValueError for non-numeric or out-of-range ``page``/``limit``.
    """
    query = BlogPostQuery(f"SELECT * FROM {BLOG_POST_TABLE} WHERE 1 = 1")

    search_term = params.get("searchTerm")
    if search_term is not None:
        term = str(search_term)
        if wildcard_spaces:
            term = term.replace(" ", "%")
        query.add("AND content ILIKE %s", f"%{term}%")

    search_tags = params.get("searchTags")
    if search_tags is not None:
        # Single-element containment; comma-separated lists are not split.
        query.add("AND tags @> ARRAY[%s]::text[]", str(search_tags))

    search_keywords = params.get("searchKeywords")
    if search_keywords is not None:
        query.add("AND keywords @> ARRAY[%s]::text[]", str(search_keywords))

    query.order_by("id", _sort_direction(params.get("order")))

    limit = _parse_non_negative_int("limit", _value_or_default(params, "limit", DEFAULT_LIMIT))
    page = _parse_non_negative_int("page", _value_or_default(params, "page", DEFAULT_PAGE))
    query.add("LIMIT %s", limit)
    query.add("OFFSET %s", _offset_for(page, limit))
    return query


def _value_or_default(params: Dict[str, Any], key: str, default: str) -> Any:
    value = params.get(key)
    return default if value is None else value
