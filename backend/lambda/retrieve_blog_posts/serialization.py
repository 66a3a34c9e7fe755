"""serialization.py — Blog post records, response bodies, and structured log lines.

Success and error bodies share one encoder so the wire format stays the same
for both: compact separators, UTF-8 text, markup passed through untouched.
"""
from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from config import logger

__all__ = [
    "BlogPost",
    "ErrorBody",
    "PostsBody",
    "ResponseBody",
    "_emit_structured_observability",
    "_encode_body",
    "_now_z",
]


@dataclass(frozen=True)
class BlogPost:
    title: Optional[str]
    content: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "content": self.content}


@dataclass(frozen=True)
class PostsBody:
    posts: List[BlogPost] = field(default_factory=list)

    def to_payload(self) -> List[Dict[str, Any]]:
        return [post.to_dict() for post in self.posts]


@dataclass(frozen=True)
class ErrorBody:
    message: str

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


ResponseBody = Union[PostsBody, ErrorBody]


def _encode_body(body: ResponseBody) -> str:
    return json.dumps(
        body.to_payload(),
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def _now_z() -> str:
    return dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _emit_structured_observability(
    *,
    component: str,
    event: str,
    request_id: Optional[str] = None,
    query_mode: Optional[str] = None,
    status_code: Optional[int] = None,
    row_count: Optional[int] = None,
    latency_ms: Optional[int] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    payload: Dict[str, Any] = {
        "timestamp": _now_z(),
        "component": component,
        "event": event,
        "request_id": str(request_id or ""),
        "query_mode": str(query_mode or ""),
        "status_code": int(status_code or 0),
        "row_count": int(max(0, row_count or 0)),
        "latency_ms": int(max(0, latency_ms or 0)),
        "error_code": str(error_code or ""),
    }
    if extra:
        payload.update(extra)
    logger.info("[OBSERVABILITY] %s", json.dumps(payload, sort_keys=True, default=str))
